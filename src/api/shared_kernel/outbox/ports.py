"""Protocols (ports) for the outbox pattern.

These protocols define the interfaces for outbox operations. They enable
a plugin architecture where each bounded context registers its own
event deserializers and handlers without shared_kernel knowing about them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from shared_kernel.outbox.value_objects import OutboxMessage

# Builds a typed domain event from a decoded payload.
EventDeserializer = Callable[[dict[str, Any]], Any]


@runtime_checkable
class IOutboxGateway(Protocol):
    """Narrow gateway over the outbox store.

    The gateway is bound to a unit of work (database session) owned by the
    caller. Producers call enqueue() inside the same transaction as the
    state change the event describes, so that a rolled back change also
    discards its message. The gateway never commits.
    """

    async def enqueue(
        self, event_type: str, payload: Mapping[str, Any]
    ) -> "OutboxMessage":
        """Append a message to the outbox within the current transaction.

        Args:
            event_type: Canonical event type name (must be non-empty)
            payload: JSON-serializable event data

        Returns:
            The created message with its id and created_at assigned

        Raises:
            InvalidOutboxMessageError: If the type is empty or the payload
                cannot be serialized
        """
        ...

    async def fetch_unprocessed(self, batch_size: int = 100) -> list["OutboxMessage"]:
        """Fetch pending messages ordered by creation time.

        Pure read: rows are not claimed. A single dispatcher per
        deployment is assumed.

        Args:
            batch_size: Maximum number of messages to return

        Returns:
            At most batch_size pending messages, oldest first
        """
        ...

    async def mark_processed(self, message_id: UUID) -> bool:
        """Set processed_at if it is not already set.

        Idempotent. An unknown id is logged and ignored.

        Args:
            message_id: The message to mark

        Returns:
            True if this call transitioned the message, False otherwise
        """
        ...

    async def cleanup_processed_before(self, cutoff: datetime) -> int:
        """Delete processed messages whose processed_at is before cutoff.

        Pending and dead-lettered messages are never deleted.

        Args:
            cutoff: Exclusive upper bound for processed_at

        Returns:
            Number of deleted messages
        """
        ...

    async def record_failure(self, message_id: UUID, error: str) -> int:
        """Record a failed dispatch attempt and return the new retry count."""
        ...

    async def mark_dead_lettered(self, message_id: UUID, error: str) -> bool:
        """Move a pending message to the dead-letter state."""
        ...


@runtime_checkable
class EventSerializer(Protocol):
    """Serializes and deserializes the domain events of one bounded context.

    Each bounded context provides its own implementation that knows how to
    convert its events to JSON-compatible dictionaries and back. The
    deserialize side is what the type registry exposes to the dispatcher.
    """

    def supported_event_types(self) -> frozenset[str]:
        """Return the canonical event type names this serializer handles.

        Returns:
            Frozenset of event type names (e.g., {"BonusClaimed"})
        """
        ...

    def serialize(self, event: Any) -> dict[str, Any]:
        """Convert a domain event to a JSON-serializable dictionary.

        Raises:
            ValueError: If the event type is not supported
        """
        ...

    def deserialize(self, event_type: str, payload: dict[str, Any]) -> Any:
        """Reconstruct a domain event from a payload.

        Raises:
            ValueError: If the event type is not supported
        """
        ...


@runtime_checkable
class EventRouter(Protocol):
    """Receives typed events from the dispatcher and invokes business handlers.

    Implementations must only raise for conditions expected to succeed on
    retry. Permanently invalid events are absorbed (logged and swallowed)
    by the router or its handlers, otherwise they are retried forever.
    """

    async def dispatch(self, event: Any) -> None:
        """Deliver an event to every interested handler."""
        ...


class EventSubscriber(Protocol):
    """Accepts handler subscriptions from bounded contexts at startup."""

    def subscribe(
        self, event_class: type, handler: Callable[[Any], Awaitable[None]]
    ) -> None:
        """Subscribe a handler to events of exactly this class."""
        ...
