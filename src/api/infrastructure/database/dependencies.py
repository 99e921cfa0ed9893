"""Database dependency injection for FastAPI.

Provides the async session factory for producers and the outbox dispatcher,
with proper transaction management and connection pooling.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_write_engine
from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability import DefaultDatabaseProbe
from infrastructure.settings import get_database_settings

# Module-level probe for observability
_probe = DefaultDatabaseProbe()

# Module-level engine instance (created on first use)
_write_engine: AsyncEngine | None = None

# Module-level sessionmaker instance (created with the engine)
_write_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_write_engine() -> AsyncEngine:
    """Get the write database engine (singleton).

    Creates engine on first call and caches for subsequent calls.
    Uses double-check locking for thread-safe initialization.
    Also creates and caches the sessionmaker for efficient session creation.

    Returns:
        Configured async engine for write operations

    Raises:
        DatabaseConnectionError: If the configured URL is invalid
    """
    global _write_engine, _write_sessionmaker
    if _write_engine is None:
        with _engine_lock:
            # Double-check after acquiring lock
            if _write_engine is None:
                settings = get_database_settings()
                try:
                    engine = create_write_engine(settings)
                except ArgumentError as e:
                    _probe.engine_creation_failed(e)
                    raise DatabaseConnectionError(
                        f"Invalid database configuration: {e}"
                    ) from e
                _write_engine = engine
                _write_sessionmaker = async_sessionmaker(
                    _write_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _probe.engine_created(engine.url.get_backend_name())
    return _write_engine


def get_write_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the write engine.

    The outbox dispatcher opens its own sessions from this factory.
    """
    get_write_engine()
    assert _write_sessionmaker is not None
    return _write_sessionmaker


async def get_write_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a write session for mutations (FastAPI dependency).

    The session is configured to NOT auto-commit. Callers must explicitly
    manage transactions using `async with session.begin()`, which is also
    the unit of work an outbox message is enqueued in.

    Usage:
        @router.post("/bonuses/{bonus_id}/claims")
        async def claim_bonus(
            session: AsyncSession = Depends(get_write_session)
        ):
            async with session.begin():
                session.add(claim)
                await publisher.publish(BonusClaimed(...))
                # both commit at end of `with` block

    Yields:
        AsyncSession for database operations
    """
    sessionmaker = get_write_sessionmaker()

    async with sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Close the database engine connections.

    Should be called on application shutdown to properly cleanup connections.
    Also resets the sessionmaker to allow reinitialization.
    """
    global _write_engine, _write_sessionmaker

    if _write_engine is not None:
        await _write_engine.dispose()
        _probe.engine_disposed()
        _write_engine = None
        _write_sessionmaker = None
