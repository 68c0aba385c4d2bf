"""Database module for the gateway.

Provides SQLAlchemy models, async database session management, and utilities.
"""

from voice_gateway.db.database import Base, Database, get_db
from voice_gateway.db.models import (
    CallRecord,
    CallStatus,
    ChatConversation,
    Lead,
    PaymentStatus,
    Profile,
    RequestLog,
    WebhookEvent,
)

__all__ = [
    "Base",
    "CallRecord",
    "CallStatus",
    "ChatConversation",
    "Database",
    "Lead",
    "PaymentStatus",
    "Profile",
    "RequestLog",
    "WebhookEvent",
    "get_db",
]
