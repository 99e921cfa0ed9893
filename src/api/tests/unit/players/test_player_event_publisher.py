"""Unit tests for PlayerEventPublisher.

Publishing runs against the SQLite outbox to check that messages share the
caller's unit of work.
"""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from infrastructure.outbox.dispatcher import OutboxDispatcher
from infrastructure.outbox.gateway import OutboxGateway
from infrastructure.outbox.registry import EventTypeRegistry
from infrastructure.outbox.router import HandlerEventRouter
from players.application.event_handlers import PlayerEventHandlers
from players.application.event_publisher import PlayerEventPublisher
from players.domain.events import BonusClaimed, PlayerSegmentChanged
from players.domain.value_objects import PlayerSegment
from players.infrastructure.outbox.serializer import PlayerEventSerializer

CLAIMED_AT = datetime(2026, 1, 8, 12, 0, 0, tzinfo=UTC)


class TestPlayerEventPublisher:
    """Tests for enqueueing players events."""

    @pytest.mark.asyncio
    async def test_publish_enqueues_canonical_type(self):
        """The class name is the canonical type name."""
        gateway = AsyncMock()
        publisher = PlayerEventPublisher(gateway)

        await publisher.publish(
            BonusClaimed(player_id="p-1", bonus_id="b-1", claimed_at=CLAIMED_AT)
        )

        gateway.enqueue.assert_awaited_once_with(
            "BonusClaimed",
            {
                "player_id": "p-1",
                "bonus_id": "b-1",
                "claimed_at": "2026-01-08T12:00:00+00:00",
            },
        )

    @pytest.mark.asyncio
    async def test_committed_events_are_stored(self, session_factory, clock):
        """Events published in a committed unit of work are pending."""
        async with session_factory() as session:
            publisher = PlayerEventPublisher(OutboxGateway(session, clock=clock))
            messages = await publisher.publish_all(
                [
                    BonusClaimed(player_id="p-1", bonus_id="b-1", claimed_at=CLAIMED_AT),
                    PlayerSegmentChanged(
                        player_id="p-1",
                        old_segment=PlayerSegment.REGULAR,
                        new_segment=PlayerSegment.VIP,
                        occurred_at=CLAIMED_AT,
                    ),
                ]
            )
            await session.commit()

        async with session_factory() as session:
            pending = await OutboxGateway(session, clock=clock).fetch_unprocessed()

        assert [m.type for m in pending] == ["BonusClaimed", "PlayerSegmentChanged"]
        assert [m.id for m in pending] == [m.id for m in messages]
        assert json.loads(pending[1].data)["new_segment"] == "vip"

    @pytest.mark.asyncio
    async def test_rolled_back_state_change_discards_event(
        self, session_factory, clock
    ):
        """A rolled back unit of work must not leave an outbox message behind."""
        async with session_factory() as session:
            publisher = PlayerEventPublisher(OutboxGateway(session, clock=clock))
            await publisher.publish(
                BonusClaimed(player_id="p-1", bonus_id="b-1", claimed_at=CLAIMED_AT)
            )
            await session.flush()
            await session.rollback()

        async with session_factory() as session:
            assert await OutboxGateway(session, clock=clock).count_pending() == 0

    @pytest.mark.asyncio
    async def test_published_event_reaches_handlers(self, session_factory, clock):
        """A published event is delivered to the players handlers."""
        async with session_factory() as session:
            publisher = PlayerEventPublisher(OutboxGateway(session, clock=clock))
            await publisher.publish(
                BonusClaimed(player_id="p-1", bonus_id="b-1", claimed_at=CLAIMED_AT)
            )
            await session.commit()

        registry = EventTypeRegistry()
        registry.register_serializer(PlayerEventSerializer(), context_name="players")
        router = HandlerEventRouter()
        notifier = AsyncMock()
        PlayerEventHandlers(notifier).register(router)
        dispatcher = OutboxDispatcher(
            session_factory=session_factory,
            registry=registry,
            router=router,
            probe=MagicMock(),
            clock=clock,
        )

        result = await dispatcher.run_cycle()

        assert result.dispatched == 1
        notifier.refresh_features.assert_awaited_once_with("p-1")
