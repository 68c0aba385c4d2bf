"""Webhook event persistence."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.models import WebhookEvent


class WebhookEventStore:
    """Records received webhooks and their processing outcome."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, event_type: str, payload: Any) -> WebhookEvent:
        event = WebhookEvent(event_type=event_type, payload=payload, processed=False)
        self.db.add(event)
        await self.db.flush()
        return event

    async def mark_processed(self, event_id: UUID, error_message: str | None = None) -> None:
        event = await self.db.get(WebhookEvent, event_id)
        if event is None:
            return
        event.processed = True
        event.error_message = error_message
        await self.db.flush()

