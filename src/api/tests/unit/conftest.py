"""Unit test fixtures.

Store-level tests run against a real SQLite database (aiosqlite) in the
test's temporary directory, with a controllable clock.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from infrastructure.database.models import Base
from infrastructure.outbox.models import OutboxMessageModel  # noqa: F401


class FakeClock:
    """Clock that only moves when told to.

    Every reading advances the clock by `tick` so that consecutive
    created_at values are strictly increasing.
    """

    def __init__(
        self,
        start: datetime = datetime(2026, 1, 8, 12, 0, 0, tzinfo=UTC),
        tick: timedelta = timedelta(milliseconds=1),
    ) -> None:
        self.now = start
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.tick
        return current

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Provide an engine on a fresh SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'outbox.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Provide a session factory configured like the application's."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
