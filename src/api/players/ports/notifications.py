"""Notification port for the players context."""

from __future__ import annotations

from typing import Any, Protocol


class PlayerNotifier(Protocol):
    """Side effects triggered by player events.

    Implementations must be idempotent: the outbox delivers at least once.
    """

    async def notify_player(
        self, player_id: str, notification_type: str, details: dict[str, Any]
    ) -> None:
        """Send a notification to a single player."""
        ...

    async def notify_admins(
        self, notification_type: str, details: dict[str, Any]
    ) -> None:
        """Send a notification to the operator team."""
        ...

    async def refresh_features(self, player_id: str) -> None:
        """Recompute the cached recommendation features for a player."""
        ...
