"""Request log retrieval."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.auth.jwt import AuthenticatedUser, get_current_user
from voice_gateway.db.database import get_db
from voice_gateway.logs.store import RequestLogStore

router = APIRouter(tags=["Logs"])


class LogListResponse(BaseModel):
    success: bool = True
    logs: list[dict[str, Any]]
    count: int
    limit: int
    offset: int


@router.get("/logs", response_model=LogListResponse)
async def list_logs(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's API request logs, newest first."""
    logs = await RequestLogStore(db).list_for_user(user.id, limit=limit, offset=offset)
    return LogListResponse(
        logs=[log.to_dict() for log in logs],
        count=len(logs),
        limit=limit,
        offset=offset,
    )
