"""Players event serializer for outbox persistence.

This module provides serialization and deserialization of players domain
events for storage in the outbox_messages table. Events are converted to
JSON-compatible dictionaries and reconstructed when the dispatcher
delivers them.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, get_args

from players.domain.events import PlayerEvent
from players.domain.value_objects import PlayerSegment

# Derive supported events from the PlayerEvent type alias
_EVENT_REGISTRY: dict[str, type] = {cls.__name__: cls for cls in get_args(PlayerEvent)}

_SUPPORTED_EVENTS: frozenset[str] = frozenset(_EVENT_REGISTRY)

_DATETIME_FIELDS = ("claimed_at", "occurred_at")
_SEGMENT_FIELDS = ("old_segment", "new_segment")


class PlayerEventSerializer:
    """Serializes and deserializes players domain events.

    The canonical type name of each event is its class name, so stored
    messages survive module moves.
    """

    def supported_event_types(self) -> frozenset[str]:
        """Return the event type names this serializer handles."""
        return _SUPPORTED_EVENTS

    def event_type_of(self, event: PlayerEvent) -> str:
        """Return the canonical type name for an event.

        Raises:
            ValueError: If the event type is not supported
        """
        event_type = type(event).__name__
        if event_type not in _SUPPORTED_EVENTS:
            raise ValueError(f"Unsupported event type: {event_type}")
        return event_type

    def serialize(self, event: PlayerEvent) -> dict[str, Any]:
        """Convert a domain event to a JSON-serializable dictionary.

        Raises:
            ValueError: If the event type is not supported
        """
        self.event_type_of(event)

        data = asdict(event)
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, PlayerSegment):
                data[key] = value.value
        return data

    def deserialize(self, event_type: str, payload: dict[str, Any]) -> Any:
        """Reconstruct a domain event from a payload.

        Args:
            event_type: The name of the event type
            payload: The decoded event data

        Returns:
            The reconstructed domain event

        Raises:
            ValueError: If the event type is not supported or a field value
                is invalid
            TypeError: If fields are missing or unexpected
        """
        event_class = _EVENT_REGISTRY.get(event_type)
        if event_class is None:
            raise ValueError(f"Unsupported event type: {event_type}")

        data = payload.copy()
        for key in _DATETIME_FIELDS:
            if key in data:
                data[key] = datetime.fromisoformat(data[key])
        for key in _SEGMENT_FIELDS:
            if key in data:
                data[key] = PlayerSegment(data[key])

        return event_class(**data)
