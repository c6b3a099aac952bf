"""
Store registry engine and session management.

The console command and the worker each open one engine per process through
``init_db()`` and dispose of it with ``close_db()``. Jobs never open engines
themselves; they get a session factory through their runtime.
"""

import logging
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from storesync.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Process-wide engine, owned by init_db()/close_db()
_engine: AsyncEngine | None = None


def engine_options(settings: Settings) -> dict[str, Any]:
    """Pool options for the configured database; SQLite gets none."""
    if make_url(settings.database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return the process engine, creating it from settings on first use."""
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.log_level.upper() == "DEBUG",
            **engine_options(settings),
        )
    return _engine


def get_test_engine(database_url: str) -> AsyncEngine:
    """Engine without pooling, so every test session gets a fresh connection."""
    return create_async_engine(database_url, poolclass=NullPool)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Stores outlive their session: jobs keep using them after the chunk query
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """
    Open the store registry for this process.

    Args:
        engine: Engine to adopt instead of the configured one.

    Returns:
        A session factory bound to the engine.
    """
    global _engine
    if engine is not None:
        _engine = engine
    engine = get_engine()
    logger.info("Store registry connected", extra={"backend": engine.url.get_backend_name()})
    return create_session_factory(engine)


async def close_db() -> None:
    """Dispose of the process engine. Safe to call when none is open."""
    global _engine
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    logger.info("Store registry connection closed")
