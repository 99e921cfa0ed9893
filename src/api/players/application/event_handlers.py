"""Handlers for players domain events delivered by the outbox dispatcher."""

from __future__ import annotations

import structlog

from shared_kernel.outbox.ports import EventSubscriber

from players.domain.events import BonusClaimed, PlayerSegmentChanged
from players.ports.notifications import PlayerNotifier

logger = structlog.get_logger()


class PlayerEventHandlers:
    """Reacts to players events with notifications and cache refreshes.

    A notifier failure propagates so the dispatcher retries the message.
    """

    def __init__(self, notifier: PlayerNotifier) -> None:
        self._notifier = notifier
        self._log = logger.bind(component="player_event_handlers")

    def register(self, router: EventSubscriber) -> None:
        """Subscribe the handlers to the router."""
        router.subscribe(BonusClaimed, self.on_bonus_claimed)
        router.subscribe(PlayerSegmentChanged, self.on_segment_changed)

    async def on_bonus_claimed(self, event: BonusClaimed) -> None:
        self._log.info(
            "handling_bonus_claimed",
            player_id=event.player_id,
            bonus_id=event.bonus_id,
        )
        await self._notifier.notify_player(
            event.player_id,
            "BonusClaimed",
            {"bonus_id": event.bonus_id, "claimed_at": event.claimed_at.isoformat()},
        )
        await self._notifier.refresh_features(event.player_id)

    async def on_segment_changed(self, event: PlayerSegmentChanged) -> None:
        self._log.info(
            "handling_player_segment_changed",
            player_id=event.player_id,
            old_segment=event.old_segment.value,
            new_segment=event.new_segment.value,
        )
        await self._notifier.notify_player(
            event.player_id,
            "SegmentChanged",
            {
                "old_segment": event.old_segment.value,
                "new_segment": event.new_segment.value,
            },
        )
        await self._notifier.notify_admins(
            "PlayerSegmentChanged",
            {
                "player_id": event.player_id,
                "old_segment": event.old_segment.value,
                "new_segment": event.new_segment.value,
            },
        )
        await self._notifier.refresh_features(event.player_id)
