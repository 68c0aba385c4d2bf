"""SQLAlchemy models for call quotas, calls, leads, webhooks, chats and logs."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy import Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from voice_gateway.db.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# =============================================================================
# Enums
# =============================================================================


class CallStatus(str, Enum):
    """Lifecycle of a call record."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    ANSWERED = "answered"  # terminal
    MISSED = "missed"  # terminal
    FORWARDED = "forwarded"


class PaymentStatus(str, Enum):
    """Payment state of a lead's payment link."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Profile Model
# =============================================================================


class Profile(Base):
    """Per-user call quota, keyed by the identity provider's user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255))
    calls_remaining: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


# =============================================================================
# Call Model
# =============================================================================


class CallRecord(Base):
    """A provider call as seen by the gateway."""

    __tablename__ = "calls"

    # Provider call id
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    caller_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    caller_name: Mapped[str | None] = mapped_column(String(255))
    transcript: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), default=CallStatus.QUEUED.value, nullable=False
    )
    duration: Mapped[int | None] = mapped_column(Integer)
    audio_url: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str | None] = mapped_column(String(64))
    is_demo: Mapped[bool] = mapped_column(Boolean, default=False)
    client_ip: Mapped[str | None] = mapped_column(String(45))  # IPv6 max length

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_calls_user_status", "user_id", "status"),
        Index("ix_calls_created_at", "created_at"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "caller_phone": self.caller_phone,
            "caller_name": self.caller_name,
            "transcript": self.transcript,
            "status": self.status,
            "duration": self.duration,
            "audio_url": self.audio_url,
            "source": self.source,
            "is_demo": self.is_demo,
            "client_ip": self.client_ip,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# =============================================================================
# Lead Model
# =============================================================================


class Lead(Base):
    """A prospective customer captured from a call, the chat widget or a form."""

    __tablename__ = "leads"

    id: Mapped[UUID] = mapped_column(SAUuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    call_id: Mapped[str | None] = mapped_column(String(64))

    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))
    intent: Mapped[str | None] = mapped_column(String(64))
    source: Mapped[str | None] = mapped_column(String(64))

    # Qualification
    is_qualified: Mapped[bool] = mapped_column(Boolean, default=False)
    qualification_score: Mapped[float | None] = mapped_column(Float)

    # Payment
    payment_link: Mapped[str | None] = mapped_column(Text)
    payment_status: Mapped[str | None] = mapped_column(String(20))

    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    lead_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "qualification_score >= 0 AND qualification_score <= 1",
            name="ck_leads_qualification_score_range",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed')",
            name="ck_leads_payment_status",
        ),
        Index("ix_leads_qualified", "is_qualified", "created_at"),
        Index("ix_leads_payment_status", "payment_status"),
        Index("ix_leads_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "call_id": self.call_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "intent": self.intent,
            "source": self.source,
            "is_qualified": self.is_qualified,
            "qualification_score": self.qualification_score,
            "payment_link": self.payment_link,
            "payment_status": self.payment_status,
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
            "metadata": self.lead_metadata or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# =============================================================================
# Webhook Event Model
# =============================================================================


class WebhookEvent(Base):
    """A provider webhook as received, with its processing outcome."""

    __tablename__ = "webhook_events"

    id: Mapped[UUID] = mapped_column(SAUuid, primary_key=True, default=uuid4)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[Any] = mapped_column(JSON, nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    error_message: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_webhook_events_processed", "processed", "created_at"),
        Index("ix_webhook_events_type", "event_type"),
    )


# =============================================================================
# Chat Conversation Model
# =============================================================================


class ChatConversation(Base):
    """Chat widget conversation with the latest turn's qualification."""

    __tablename__ = "chat_conversations"

    id: Mapped[UUID] = mapped_column(SAUuid, primary_key=True, default=uuid4)
    conversation_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # [{role, content, timestamp}, ...]
    messages: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    user_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    sentiment_score: Mapped[float] = mapped_column(Float, default=0.5)
    intent: Mapped[str] = mapped_column(String(20), default="general")
    urgency: Mapped[str] = mapped_column(String(10), default="medium")
    keywords: Mapped[list[str]] = mapped_column(JSON, default=list)
    message_count: Mapped[int] = mapped_column(Integer, default=0)

    lead_captured: Mapped[bool] = mapped_column(Boolean, default=False)
    lead_captured_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_message_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_chat_conversations_session_id", "session_id"),
        Index("ix_chat_conversations_lead_captured", "lead_captured"),
        Index("ix_chat_conversations_last_message_at", "last_message_at"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "conversation_id": self.conversation_id,
            "session_id": self.session_id,
            "messages": self.messages or [],
            "message_count": self.message_count,
            "user_metadata": self.user_metadata or {},
            "sentiment_score": self.sentiment_score,
            "intent": self.intent,
            "urgency": self.urgency,
            "keywords": self.keywords or [],
            "lead_captured": self.lead_captured,
            "lead_captured_at": _iso(self.lead_captured_at),
            "last_message_at": _iso(self.last_message_at),
            "created_at": _iso(self.created_at),
        }


# =============================================================================
# Request Log Model
# =============================================================================


class RequestLog(Base):
    """Sanitized audit trail of API traffic."""

    __tablename__ = "request_logs"

    id: Mapped[UUID] = mapped_column(SAUuid, primary_key=True, default=uuid4)
    user_id: Mapped[str | None] = mapped_column(String(64))
    endpoint: Mapped[str] = mapped_column(String(512), nullable=False)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    status_code: Mapped[int | None] = mapped_column(Integer)
    request_body: Mapped[Any] = mapped_column(JSON)
    response_body: Mapped[Any] = mapped_column(JSON)
    error_message: Mapped[str | None] = mapped_column(Text)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    duration_ms: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_request_logs_user_id", "user_id"),
        Index("ix_request_logs_created_at", "created_at"),
        Index("ix_request_logs_endpoint", "endpoint"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "endpoint": self.endpoint,
            "method": self.method,
            "status_code": self.status_code,
            "request_body": self.request_body,
            "response_body": self.response_body,
            "error_message": self.error_message,
            "ip_address": self.ip_address,
            "duration_ms": self.duration_ms,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
