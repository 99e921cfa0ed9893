"""Event type registry for the outbox pattern.

Maps canonical event type names to deserializers. Each bounded context
registers its own event types at startup, so adding a new event type never
requires touching the dispatcher.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from shared_kernel.outbox.exceptions import (
    DuplicateEventTypeError,
    EventDeserializationError,
    UnknownEventTypeError,
)
from shared_kernel.outbox.ports import EventDeserializer, EventSerializer

if TYPE_CHECKING:
    from shared_kernel.outbox.observability import OutboxDispatcherProbe


class EventTypeRegistry:
    """Resolves canonical event type names to payload deserializers.

    Registration is additive: a type name can only be registered once, and
    registering one context never affects another. Lookups are non-raising
    through resolve(); deserialize() raises for unknown types.
    """

    def __init__(self, probe: "OutboxDispatcherProbe | None" = None) -> None:
        """Initialize with an empty registry.

        Args:
            probe: Optional observability probe for logging registrations
        """
        self._deserializers: dict[str, EventDeserializer] = {}
        self._probe = probe

    def register(
        self,
        event_type: str,
        deserializer: EventDeserializer,
        context_name: str | None = None,
    ) -> None:
        """Register a deserializer for a single event type.

        Args:
            event_type: Canonical event type name
            deserializer: Callable building the typed event from a payload dict
            context_name: Optional bounded context name for logging

        Raises:
            DuplicateEventTypeError: If the type is already registered
        """
        if event_type in self._deserializers:
            raise DuplicateEventTypeError(event_type)
        self._deserializers[event_type] = deserializer

        if self._probe is not None:
            self._probe.deserializer_registered(
                context_name or event_type, frozenset({event_type})
            )

    def register_serializer(
        self, serializer: EventSerializer, context_name: str | None = None
    ) -> None:
        """Register every event type a context serializer supports.

        Args:
            serializer: The bounded context's serializer
            context_name: Optional bounded context name (defaults to class name)

        Raises:
            DuplicateEventTypeError: If any of the types is already registered
        """
        event_types = serializer.supported_event_types()
        duplicates = sorted(event_types & self._deserializers.keys())
        if duplicates:
            raise DuplicateEventTypeError(duplicates[0])

        for event_type in event_types:
            self._deserializers[event_type] = partial(
                serializer.deserialize, event_type
            )

        if self._probe is not None:
            name = (
                context_name if context_name is not None else type(serializer).__name__
            )
            self._probe.deserializer_registered(name, event_types)

    def supported_event_types(self) -> frozenset[str]:
        """Return all registered event type names."""
        return frozenset(self._deserializers)

    def resolve(self, event_type: str) -> EventDeserializer | None:
        """Look up the deserializer for an event type.

        Returns:
            The deserializer, or None if the type is not registered
        """
        return self._deserializers.get(event_type)

    def deserialize(self, event_type: str, payload: dict[str, Any]) -> Any:
        """Reconstruct a typed event from a decoded payload.

        Args:
            event_type: Canonical event type name
            payload: The decoded event data

        Returns:
            The typed domain event

        Raises:
            UnknownEventTypeError: If no deserializer is registered
            EventDeserializationError: If the payload does not fit the type
        """
        deserializer = self.resolve(event_type)
        if deserializer is None:
            raise UnknownEventTypeError(event_type, self.supported_event_types())
        try:
            return deserializer(payload)
        except Exception as e:
            raise EventDeserializationError(event_type, e) from e
