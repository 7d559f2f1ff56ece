"""Async SQLAlchemy setup for the test subscription cache."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from saas_lifecycle.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _create_engine() -> AsyncEngine:
    settings = get_settings()
    options = {"echo": settings.debug}
    # SQLite uses a static pool that rejects pool sizing options
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_pool_max_overflow,
        )
    logger.info("Connecting subscription cache to %s", settings.database_url.split("@")[-1])
    return create_async_engine(settings.database_url, **options)


def _get_sessions() -> async_sessionmaker[AsyncSession]:
    global _engine, _sessions
    if _sessions is None:
        _engine = _create_engine()
        _sessions = async_sessionmaker(_engine, expire_on_commit=False)
    return _sessions


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits when the block exits cleanly.

    Yields:
        AsyncSession instance.
    """
    async with _get_sessions()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database() -> None:
    """Create the subscription cache table if it does not exist."""
    from saas_lifecycle.db import models  # noqa: F401

    _get_sessions()
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Subscription cache table ready")


async def close_database() -> None:
    """Dispose of the engine; the next session reconnects."""
    global _engine, _sessions
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessions = None
        logger.info("Subscription cache connection closed")
