# app/db/session.py
from __future__ import annotations

"""
VideoDrop - Database Engines & Sessions

- Async engine/session factories for the app, the reaper script and tests.
- Nothing is created at import time: the composition root
  (`app.core.container.build_container`) owns the engine and disposes it.
"""

from typing import Any, Dict
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)

# Pool knobs (server databases only)
_POOL_PRE_PING = True
_POOL_RECYCLE = 1800
_POOL_TIMEOUT = 30
_POOL_SIZE = 10
_MAX_OVERFLOW = 20


def derive_async_url(url: str) -> str:
    """Convert a sync Postgres URL to an asyncpg URL if needed."""
    if "+asyncpg" in url or "+aiosqlite" in url:
        return url
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """Create the async engine; SQLite URLs and explicit pool classes skip the pool knobs."""
    url = derive_async_url(database_url)
    kwargs: Dict[str, Any] = {"echo": False}
    if not url.startswith("sqlite") and "poolclass" not in overrides:
        kwargs.update(
            pool_pre_ping=_POOL_PRE_PING,
            pool_recycle=_POOL_RECYCLE,
            pool_size=_POOL_SIZE,
            max_overflow=_MAX_OVERFLOW,
            pool_timeout=_POOL_TIMEOUT,
        )
    kwargs.update(overrides)
    return create_async_engine(url, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def db_healthcheck(engine: AsyncEngine) -> bool:
    """Quick SELECT 1 to verify DB connectivity (used by /readyz)."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("DB healthcheck failed")
        return False


__all__ = [
    "derive_async_url",
    "build_engine",
    "build_session_maker",
    "db_healthcheck",
]
