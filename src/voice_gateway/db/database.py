"""Database connection and session management.

Provides the async SQLAlchemy engine and session factory, owned by a
Database object that the app factory creates once per application.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def normalize_database_url(url: str) -> str:
    """Point plain sqlite URLs at the aiosqlite driver."""
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


class Database:
    """Engine and session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        self.url = normalize_database_url(url)

        if self.url.startswith("sqlite"):
            # SQLite async requires aiosqlite
            self.engine = create_async_engine(self.url, echo=echo)
        else:
            # PostgreSQL with asyncpg
            self.engine = create_async_engine(
                self.url,
                echo=echo,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )

        self.sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error.

        Used by background work that runs outside a request.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def init_models(self) -> None:
        """Create all tables defined in models if they don't exist.

        For production, use Alembic migrations instead.
        """
        # Registers the mapped classes on Base.metadata
        from voice_gateway.db import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    Usage:
        @router.get("/leads")
        async def list_leads(db: AsyncSession = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.services.database
    async with database.sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
