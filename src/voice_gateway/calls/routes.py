"""Outbound call routes.

Calls are placed through the voice provider on behalf of the authenticated
user and counted against their call quota.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.auth.jwt import AuthenticatedUser, get_current_user
from voice_gateway.calls.store import CallStore
from voice_gateway.config import Settings
from voice_gateway.db.database import get_db
from voice_gateway.db.models import CallRecord, CallStatus
from voice_gateway.dependencies import get_settings, get_voice_client
from voice_gateway.errors import InternalError, InvalidRequestError, QuotaExceededError
from voice_gateway.providers.vapi import VapiClient

logger = logging.getLogger("voice-gateway-calls")

router = APIRouter(tags=["Calls"])

CALL_SOURCE = "callwaitingai"


# =============================================================================
# Request/Response Models
# =============================================================================


class Customer(BaseModel):
    """The person being called."""

    model_config = ConfigDict(extra="allow")

    number: str | None = None
    name: str | None = None


class CallRequest(BaseModel):
    """Request to place an outbound call."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    assistant_id: str | None = Field(default=None, alias="assistantId")
    customer: Customer | None = None
    phone_number_id: str | None = Field(default=None, alias="phoneNumberId")
    metadata: dict[str, Any] | None = None


class CallResponse(BaseModel):
    success: bool = True
    call: dict[str, Any]
    callsRemaining: int


class CallDetailResponse(BaseModel):
    success: bool = True
    call: dict[str, Any]


class CallListResponse(BaseModel):
    success: bool = True
    calls: list[dict[str, Any]]
    count: int
    limit: int
    offset: int


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/call", response_model=CallResponse)
async def create_call(
    request: CallRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    voice: VapiClient = Depends(get_voice_client),
    settings: Settings = Depends(get_settings),
):
    """Place an outbound call and use one call from the caller's quota.

    Returns:
    - 400 if assistantId or customer.number is missing
    - 500 if the quota cannot be read
    - 403 if no calls remain
    """
    if not request.assistant_id or not request.customer or not request.customer.number:
        raise InvalidRequestError("assistantId and customer.number are required")

    store = CallStore(db)
    calls_remaining = await store.get_calls_remaining(user.id)

    if calls_remaining is None:
        raise InternalError("Failed to check user call quota")

    if calls_remaining <= 0:
        raise QuotaExceededError(
            "No calls remaining. Please upgrade your plan.", callsRemaining=0
        )

    call_request = {
        "assistantId": request.assistant_id,
        "customer": request.customer.model_dump(exclude_none=True),
        "phoneNumberId": request.phone_number_id or settings.default_phone_number_id,
        "metadata": {
            **(request.metadata or {}),
            "userId": user.id,
            "source": CALL_SOURCE,
        },
    }
    if call_request["phoneNumberId"] is None:
        del call_request["phoneNumberId"]

    call = await voice.initiate_call(call_request)

    await store.save(
        CallRecord(
            id=call["id"],
            user_id=user.id,
            caller_phone=request.customer.number,
            caller_name=request.customer.name,
            status=CallStatus.IN_PROGRESS.value,
            source=CALL_SOURCE,
        )
    )
    await store.decrement_calls(user.id)
    await db.commit()

    logger.info(f"[Call] Initiated call {call['id']} for user {user.id}")

    return CallResponse(call=call, callsRemaining=calls_remaining - 1)


@router.get("/call/{call_id}", response_model=CallDetailResponse)
async def get_call(
    call_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    """Call details as reported by the voice provider."""
    call = await voice.get_call(call_id)
    return CallDetailResponse(call=call)


@router.get("/calls", response_model=CallListResponse)
async def list_calls(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    voice: VapiClient = Depends(get_voice_client),
):
    """List the caller's calls.

    The provider returns every call on the account; only those whose
    metadata.userId matches the caller are returned.
    """
    calls = await voice.list_calls(limit=limit, offset=offset)
    user_calls = [
        call for call in calls if (call.get("metadata") or {}).get("userId") == user.id
    ]
    return CallListResponse(
        calls=user_calls, count=len(user_calls), limit=limit, offset=offset
    )
