"""Outbox integration for the players context."""

from players.infrastructure.outbox.serializer import PlayerEventSerializer

__all__ = ["PlayerEventSerializer"]
