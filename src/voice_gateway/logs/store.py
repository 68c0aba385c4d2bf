"""Request log persistence."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.models import RequestLog


class RequestLogStore:
    """Reads and writes RequestLog rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, entry: RequestLog) -> RequestLog:
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[RequestLog]:
        """The user's logs, newest first."""
        result = await self.db.execute(
            select(RequestLog)
            .where(RequestLog.user_id == user_id)
            .order_by(RequestLog.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
