"""Integration tests for the outbox against PostgreSQL (asyncpg)."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from infrastructure.outbox.dispatcher import OutboxDispatcher
from infrastructure.outbox.gateway import OutboxGateway
from infrastructure.outbox.registry import EventTypeRegistry

pytestmark = pytest.mark.integration


@dataclass(frozen=True)
class OrderPlaced:
    order_id: str


class CollectingRouter:
    def __init__(self) -> None:
        self.events: list[OrderPlaced] = []

    async def dispatch(self, event: OrderPlaced) -> None:
        self.events.append(event)


class TestOutboxPostgres:
    """End-to-end outbox behavior on PostgreSQL."""

    @pytest.mark.asyncio
    async def test_enqueue_dispatch_and_cleanup(self, pg_session_factory):
        """Messages flow from enqueue through dispatch to cleanup."""
        async with pg_session_factory() as session:
            gateway = OutboxGateway(session)
            for i in range(3):
                await gateway.enqueue("OrderPlaced", {"order_id": f"o-{i}"})
            await gateway.enqueue("UnknownEventV99", {"x": 1})
            await session.commit()

        registry = EventTypeRegistry()
        registry.register("OrderPlaced", lambda payload: OrderPlaced(**payload))
        router = CollectingRouter()
        dispatcher = OutboxDispatcher(
            session_factory=pg_session_factory,
            registry=registry,
            router=router,
            probe=MagicMock(),
            batch_size=2,
        )

        await dispatcher.run_cycle()
        await dispatcher.run_cycle()

        assert [e.order_id for e in router.events] == ["o-0", "o-1", "o-2"]
        async with pg_session_factory() as session:
            gateway = OutboxGateway(session)
            assert await gateway.count_pending() == 0

        future = datetime.now(UTC) + timedelta(days=8)
        assert await dispatcher.run_cleanup(now=future) == 4

    @pytest.mark.asyncio
    async def test_rollback_discards_message(self, pg_session_factory):
        """An enqueue in a rolled back transaction leaves nothing behind."""
        async with pg_session_factory() as session:
            await OutboxGateway(session).enqueue("OrderPlaced", {"order_id": "o"})
            await session.flush()
            await session.rollback()

        async with pg_session_factory() as session:
            assert await OutboxGateway(session).count_pending() == 0
