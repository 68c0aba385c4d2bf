"""Call records and per-user call quotas."""

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.models import CallRecord, Profile

logger = logging.getLogger("voice-gateway-calls")


class CallStore:
    """Reads and writes CallRecord and Profile rows."""

    def __init__(self, db: AsyncSession):
        """Initialize the store.

        Args:
            db: Async database session.
        """
        self.db = db

    async def save(self, record: CallRecord) -> CallRecord:
        self.db.add(record)
        await self.db.flush()
        return record

    async def get(self, call_id: str) -> CallRecord | None:
        return await self.db.get(CallRecord, call_id)

    async def update(self, call_id: str, **fields: Any) -> bool:
        """Apply ``fields`` to an existing call. Returns False if it is unknown."""
        record = await self.get(call_id)
        if record is None:
            logger.warning(f"[Calls] Update for unknown call {call_id}")
            return False

        for key, value in fields.items():
            setattr(record, key, value)
        await self.db.flush()
        return True

    async def get_calls_remaining(self, user_id: str) -> int | None:
        """Remaining call quota, or None when the user has no profile."""
        result = await self.db.execute(
            select(Profile.calls_remaining).where(Profile.id == user_id)
        )
        return result.scalar_one_or_none()

    async def decrement_calls(self, user_id: str) -> bool:
        """Use one call from the quota. Returns False if none were left."""
        result = await self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .where(Profile.calls_remaining > 0)
            .values(calls_remaining=Profile.calls_remaining - 1)
        )
        return result.rowcount == 1

    async def recent_demo_calls(self, limit: int = 100) -> list[CallRecord]:
        result = await self.db.execute(
            select(CallRecord)
            .where(CallRecord.is_demo.is_(True))
            .order_by(CallRecord.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
