"""Structlog-backed player notifier.

Stands in for the push/admin notification channels and the feature cache
when the API runs without them.
"""

from __future__ import annotations

from typing import Any

import structlog


class LoggingPlayerNotifier:
    """PlayerNotifier that records each side effect as a log event."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._log = (logger or structlog.get_logger()).bind(
            component="player_notifier"
        )

    async def notify_player(
        self, player_id: str, notification_type: str, details: dict[str, Any]
    ) -> None:
        self._log.info(
            "player_notification_sent",
            player_id=player_id,
            notification_type=notification_type,
            **details,
        )

    async def notify_admins(
        self, notification_type: str, details: dict[str, Any]
    ) -> None:
        self._log.info(
            "admin_notification_sent",
            notification_type=notification_type,
            **details,
        )

    async def refresh_features(self, player_id: str) -> None:
        self._log.info("player_features_refresh_requested", player_id=player_id)
