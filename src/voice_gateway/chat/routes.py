"""Chat widget routes with conversation memory and lead qualification."""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.chat.assistant import ChatAssistant
from voice_gateway.chat.store import ConversationStore
from voice_gateway.db.database import get_db
from voice_gateway.dependencies import get_assistant, get_classifier
from voice_gateway.errors import InvalidRequestError, NotFoundError
from voice_gateway.qualification.scoring import calculate_qualification_score
from voice_gateway.qualification.sentiment import SentimentClassifier

logger = logging.getLogger("voice-gateway-chat")

router = APIRouter(tags=["Chat"])

LEAD_CAPTURE_SCORE = 0.7
LEAD_CAPTURE_MIN_MESSAGES = 6
_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Opaque id such as ``conv_1718000000000_k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


# =============================================================================
# Request/Response Models
# =============================================================================


class UserMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ChatRequest(BaseModel):
    message: str | None = None
    conversationId: str | None = None
    sessionId: str | None = None
    userMetadata: UserMetadata | None = None


class SentimentSummary(BaseModel):
    score: float
    intent: str
    urgency: str


class ChatResponse(BaseModel):
    success: bool = True
    response: str
    conversationId: str
    sessionId: str
    messageCount: int
    sentiment: SentimentSummary
    qualificationScore: float
    shouldCaptureLeadNow: bool


class ConversationResponse(BaseModel):
    success: bool = True
    conversation: dict[str, Any]


class MetadataUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class MetadataResponse(BaseModel):
    success: bool = True
    message: str


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    db: AsyncSession = Depends(get_db),
    assistant: ChatAssistant = Depends(get_assistant),
    classifier: SentimentClassifier = Depends(get_classifier),
):
    """Reply to a chat message and score the visitor's interest.

    The qualification score reflects this message only. ``shouldCaptureLeadNow``
    asks the widget to collect contact details once the visitor looks
    qualified and has had at least three exchanges (six messages).
    """
    if not request.message or not request.message.strip():
        raise InvalidRequestError("Message is required")

    conversation_id = request.conversationId or generate_id("conv")
    session_id = request.sessionId or generate_id("sess")
    user_metadata = (
        request.userMetadata.model_dump(exclude_none=True) if request.userMetadata else {}
    )

    store = ConversationStore(db)
    history: list[dict[str, Any]] = []
    if request.conversationId:
        existing = await store.get(request.conversationId)
        if existing is not None and existing.messages:
            history = list(existing.messages)

    reply = await assistant.get_chat_response(request.message, history)
    sentiment = await classifier.classify(request.message)

    history += [
        {
            "role": "user",
            "content": request.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        {
            "role": "assistant",
            "content": reply,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    ]

    saved = await store.upsert(
        conversation_id=conversation_id,
        session_id=session_id,
        messages=history,
        user_metadata=user_metadata,
        sentiment_score=sentiment.score,
        intent=sentiment.intent.value,
        urgency=sentiment.urgency.value,
        keywords=list(sentiment.keywords),
    )
    if saved:
        await db.commit()
    else:
        logger.warning(f"[Chat] Conversation {conversation_id} was not persisted")

    qualification_score = calculate_qualification_score([sentiment])
    should_capture = (
        qualification_score > LEAD_CAPTURE_SCORE
        and len(history) >= LEAD_CAPTURE_MIN_MESSAGES
        and not user_metadata.get("email")
    )

    return ChatResponse(
        response=reply,
        conversationId=conversation_id,
        sessionId=session_id,
        messageCount=len(history),
        sentiment=SentimentSummary(
            score=sentiment.score,
            intent=sentiment.intent.value,
            urgency=sentiment.urgency.value,
        ),
        qualificationScore=qualification_score,
        shouldCaptureLeadNow=should_capture,
    )


@router.get("/chat/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(conversation_id: str, db: AsyncSession = Depends(get_db)):
    conversation = await ConversationStore(db).get(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    return ConversationResponse(conversation=conversation.to_dict())


@router.post("/chat/{conversation_id}/metadata", response_model=MetadataResponse)
async def update_conversation_metadata(
    conversation_id: str,
    metadata: MetadataUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Attach the visitor's contact details once the widget collects them."""
    conversation = await ConversationStore(db).update_metadata(
        conversation_id,
        name=metadata.name,
        email=metadata.email,
        phone=metadata.phone,
    )
    if conversation is None:
        raise NotFoundError("Conversation not found")
    await db.commit()

    if metadata.email:
        logger.info(f"[Chat] Lead captured for conversation {conversation_id}")
    return MetadataResponse(message="Metadata updated successfully")
