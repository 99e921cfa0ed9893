"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. Use docker-compose
for testing.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_write_engine
from infrastructure.database.models import Base
from infrastructure.outbox.models import OutboxMessageModel
from infrastructure.settings import DatabaseSettings


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        GAMEDESK_DB_HOST, GAMEDESK_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("GAMEDESK_DB_HOST", "localhost"),
        port=int(os.getenv("GAMEDESK_DB_PORT", "5432")),
        database=os.getenv("GAMEDESK_DB_DATABASE", "gamedesk"),
        username=os.getenv("GAMEDESK_DB_USERNAME", "gamedesk"),
        password=SecretStr(os.getenv("GAMEDESK_DB_PASSWORD", "gamedesk_dev_password")),
    )


@pytest_asyncio.fixture
async def pg_engine(
    integration_db_settings: DatabaseSettings,
) -> AsyncGenerator[AsyncEngine, None]:
    """Provide an engine with the outbox table created and emptied."""
    engine = create_write_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(f"TRUNCATE {OutboxMessageModel.__tablename__}"))
    yield engine
    async with engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {OutboxMessageModel.__tablename__}"))
    await engine.dispose()


@pytest.fixture
def pg_session_factory(pg_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Provide a session factory on the integration database."""
    return async_sessionmaker(pg_engine, expire_on_commit=False, class_=AsyncSession)
