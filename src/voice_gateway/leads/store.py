"""Lead persistence."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.models import Lead

# Columns a PATCH may touch
UPDATABLE_FIELDS = frozenset(
    {
        "user_id",
        "call_id",
        "name",
        "email",
        "phone",
        "intent",
        "source",
        "is_qualified",
        "qualification_score",
        "payment_link",
        "payment_status",
        "notified_at",
        "metadata",
    }
)


def parse_lead_id(lead_id: str | UUID) -> UUID | None:
    if isinstance(lead_id, UUID):
        return lead_id
    try:
        return UUID(lead_id)
    except (TypeError, ValueError):
        return None


class LeadStore:
    """Reads and writes Lead rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields: Any) -> Lead:
        metadata = fields.pop("metadata", None) or {}
        lead = Lead(lead_metadata=metadata, **fields)
        self.db.add(lead)
        await self.db.flush()
        return lead

    async def get(self, lead_id: str | UUID) -> Lead | None:
        parsed = parse_lead_id(lead_id)
        if parsed is None:
            return None
        return await self.db.get(Lead, parsed)

    async def list_leads(
        self, limit: int = 50, offset: int = 0, status: str | None = None
    ) -> list[Lead]:
        query = select(Lead).order_by(Lead.created_at.desc())
        if status:
            query = query.where(Lead.payment_status == status)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def update(self, lead_id: str | UUID, updates: dict[str, Any]) -> Lead | None:
        """Apply allowed fields; ``id`` and ``created_at`` are never changed.

        Returns None when the lead does not exist.
        """
        lead = await self.get(lead_id)
        if lead is None:
            return None

        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS:
                continue
            if key == "metadata":
                lead.lead_metadata = value or {}
            else:
                setattr(lead, key, value)
        await self.db.flush()
        return lead

    async def mark_notified(self, lead_id: UUID) -> None:
        lead = await self.get(lead_id)
        if lead is not None:
            lead.notified_at = datetime.now(timezone.utc)
            await self.db.flush()

    async def update_payment(
        self, lead_id: str | UUID, payment_status: str, payment_link: str | None = None
    ) -> Lead | None:
        lead = await self.get(lead_id)
        if lead is None:
            return None
        lead.payment_status = payment_status
        if payment_link is not None:
            lead.payment_link = payment_link
        await self.db.flush()
        return lead
