"""Voice assistant management, passed through to the voice provider."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel

from voice_gateway.auth.jwt import AuthenticatedUser, get_current_user
from voice_gateway.dependencies import get_voice_client
from voice_gateway.errors import InvalidRequestError
from voice_gateway.providers.vapi import VapiClient

logger = logging.getLogger("voice-gateway-assistants")

router = APIRouter(tags=["Assistants"])

REQUIRED_FIELDS = ("name", "model", "voice")


class AssistantResponse(BaseModel):
    success: bool = True
    assistant: dict[str, Any]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


@router.get("/assistant/{assistant_id}", response_model=AssistantResponse)
async def get_assistant(
    assistant_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    assistant = await voice.get_assistant(assistant_id)
    return AssistantResponse(assistant=assistant)


@router.post(
    "/assistant",
    response_model=AssistantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_assistant(
    config: dict[str, Any] = Body(...),
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    """Create an assistant. ``name``, ``model`` and ``voice`` are required."""
    if not all(config.get(key) for key in REQUIRED_FIELDS):
        raise InvalidRequestError("name, model, and voice are required fields")

    assistant = await voice.create_assistant(config)
    logger.info(f"[Assistant] Created assistant {assistant.get('id')} for user {user.id}")
    return AssistantResponse(assistant=assistant)


@router.patch("/assistant/{assistant_id}", response_model=AssistantResponse)
async def update_assistant(
    assistant_id: str,
    updates: dict[str, Any] = Body(...),
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    assistant = await voice.update_assistant(assistant_id, updates)
    logger.info(f"[Assistant] Updated assistant {assistant_id} for user {user.id}")
    return AssistantResponse(assistant=assistant)


@router.delete("/assistant/{assistant_id}", response_model=DeleteResponse)
async def delete_assistant(
    assistant_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    await voice.delete_assistant(assistant_id)
    logger.info(f"[Assistant] Deleted assistant {assistant_id} for user {user.id}")
    return DeleteResponse(message="Assistant deleted successfully")
