"""Persistence for chat widget conversations."""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.models import ChatConversation

logger = logging.getLogger("voice-gateway-chat")


class ConversationStore:
    """Reads and writes ChatConversation rows."""

    def __init__(self, db: AsyncSession):
        """Initialize the store.

        Args:
            db: Async database session.
        """
        self.db = db

    async def get(self, conversation_id: str) -> ChatConversation | None:
        result = await self.db.execute(
            select(ChatConversation).where(
                ChatConversation.conversation_id == conversation_id
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        conversation_id: str,
        session_id: str,
        messages: list[dict[str, Any]],
        user_metadata: dict[str, Any],
        sentiment_score: float,
        intent: str,
        urgency: str,
        keywords: list[str],
    ) -> bool:
        """Create or fully replace a conversation.

        Returns False instead of raising when the database write fails.
        """
        now = datetime.now(timezone.utc)
        try:
            conversation = await self.get(conversation_id)
            if conversation is None:
                conversation = ChatConversation(
                    conversation_id=conversation_id, session_id=session_id
                )
                self.db.add(conversation)

            conversation.messages = list(messages)
            conversation.message_count = len(messages)
            conversation.user_metadata = dict(user_metadata)
            conversation.sentiment_score = sentiment_score
            conversation.intent = intent
            conversation.urgency = urgency
            conversation.keywords = list(keywords)
            conversation.last_message_at = now
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"[Chat] Failed to save conversation {conversation_id}: {e!s}")
            await self.db.rollback()
            return False
        return True

    async def update_metadata(
        self,
        conversation_id: str,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> ChatConversation | None:
        """Merge lead contact details into a conversation's user metadata.

        An email marks the conversation's lead as captured. Returns None when
        the conversation does not exist.
        """
        conversation = await self.get(conversation_id)
        if conversation is None:
            return None

        contact = {"name": name, "email": email, "phone": phone}
        conversation.user_metadata = {
            **(conversation.user_metadata or {}),
            **{key: value for key, value in contact.items() if value},
        }
        if email and not conversation.lead_captured:
            conversation.lead_captured = True
            conversation.lead_captured_at = datetime.now(timezone.utc)

        await self.db.flush()
        return conversation
