"""Ports (interfaces) for the players bounded context."""

from players.ports.notifications import PlayerNotifier

__all__ = ["PlayerNotifier"]
