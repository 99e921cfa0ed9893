"""Observability probes for the outbox components.

Following Domain Oriented Observability, probes capture domain-significant
events and metrics without cluttering business logic with logging concerns.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

import structlog

logger = structlog.get_logger()


class OutboxDispatcherProbe(Protocol):
    """Protocol for outbox dispatcher observability.

    Implementations can log, emit metrics, or send traces.
    """

    def dispatcher_started(self) -> None:
        """Called when the dispatcher starts."""
        ...

    def dispatcher_stopped(self) -> None:
        """Called when the dispatcher stops."""
        ...

    def poll_loop_started(self) -> None:
        """Called when the poll loop starts."""
        ...

    def poll_loop_error(self, error: str) -> None:
        """Called when a cycle fails outside per-message handling."""
        ...

    def batch_fetched(self, count: int) -> None:
        """Called after pending messages are fetched."""
        ...

    def event_dispatched(self, message_id: UUID, event_type: str) -> None:
        """Called when an event is successfully dispatched and marked."""
        ...

    def unknown_event_type_dropped(self, message_id: UUID, event_type: str) -> None:
        """Called when a message with an unresolved type is dropped."""
        ...

    def event_dispatch_failed(
        self, message_id: UUID, event_type: str, error: str, retry_count: int
    ) -> None:
        """Called when dispatch fails and the message stays pending."""
        ...

    def event_deserialization_failed(
        self, message_id: UUID, event_type: str, error: str
    ) -> None:
        """Called when a payload does not match its declared schema."""
        ...

    def event_dead_lettered(
        self, message_id: UUID, event_type: str, error: str
    ) -> None:
        """Called when a message is moved to the dead-letter state."""
        ...

    def message_update_failed(self, message_id: UUID, error: str) -> None:
        """Called when the outcome of a message could not be persisted."""
        ...

    def batch_processed(self, dispatched: int, total: int) -> None:
        """Called when a batch has been worked through."""
        ...

    def cleanup_completed(self, cutoff: datetime, deleted: int) -> None:
        """Called after old processed messages are deleted."""
        ...

    def cleanup_failed(self, error: str) -> None:
        """Called when cleanup fails; the loop carries on."""
        ...

    def deserializer_registered(
        self, context_name: str, event_types: frozenset[str]
    ) -> None:
        """Called when a bounded context registers its event types."""
        ...


class DefaultOutboxDispatcherProbe:
    """Default implementation using structlog.

    Logs all dispatcher events with appropriate log levels.
    """

    def __init__(self) -> None:
        """Initialize the probe with a logger."""
        self._log = logger.bind(component="outbox_dispatcher")

    def dispatcher_started(self) -> None:
        """Log dispatcher start."""
        self._log.info("outbox_dispatcher_started")

    def dispatcher_stopped(self) -> None:
        """Log dispatcher stop."""
        self._log.info("outbox_dispatcher_stopped")

    def poll_loop_started(self) -> None:
        """Log poll loop start."""
        self._log.info("outbox_poll_loop_started")

    def poll_loop_error(self, error: str) -> None:
        """Log poll loop error."""
        self._log.error("outbox_poll_loop_error", error=error)

    def batch_fetched(self, count: int) -> None:
        """Log fetched batch size."""
        if count > 0:
            self._log.debug("outbox_batch_fetched", count=count)

    def event_dispatched(self, message_id: UUID, event_type: str) -> None:
        """Log successful dispatch."""
        self._log.info(
            "outbox_event_dispatched",
            message_id=str(message_id),
            event_type=event_type,
        )

    def unknown_event_type_dropped(self, message_id: UUID, event_type: str) -> None:
        """Log a dropped message.

        The event is lost for downstream handlers, so this is a warning.
        """
        self._log.warning(
            "outbox_unknown_event_type_dropped",
            message_id=str(message_id),
            event_type=event_type,
        )

    def event_dispatch_failed(
        self, message_id: UUID, event_type: str, error: str, retry_count: int
    ) -> None:
        """Log failed dispatch that will be retried."""
        self._log.warning(
            "outbox_event_dispatch_failed",
            message_id=str(message_id),
            event_type=event_type,
            error=error,
            retry_count=retry_count,
        )

    def event_deserialization_failed(
        self, message_id: UUID, event_type: str, error: str
    ) -> None:
        """Log a payload that could not be turned into an event."""
        self._log.error(
            "outbox_event_deserialization_failed",
            message_id=str(message_id),
            event_type=event_type,
            error=error,
        )

    def event_dead_lettered(
        self, message_id: UUID, event_type: str, error: str
    ) -> None:
        """Log a message moved to the dead-letter state."""
        self._log.error(
            "outbox_event_dead_lettered",
            message_id=str(message_id),
            event_type=event_type,
            error=error,
        )

    def message_update_failed(self, message_id: UUID, error: str) -> None:
        """Log a lost status update; the message will be seen again."""
        self._log.error(
            "outbox_message_update_failed",
            message_id=str(message_id),
            error=error,
        )

    def batch_processed(self, dispatched: int, total: int) -> None:
        """Log batch processing."""
        if total > 0:
            self._log.info(
                "outbox_batch_processed", dispatched=dispatched, total=total
            )

    def cleanup_completed(self, cutoff: datetime, deleted: int) -> None:
        """Log cleanup result."""
        self._log.info(
            "outbox_cleanup_completed",
            cutoff=cutoff.isoformat(),
            deleted=deleted,
        )

    def cleanup_failed(self, error: str) -> None:
        """Log cleanup failure."""
        self._log.error("outbox_cleanup_failed", error=error)

    def deserializer_registered(
        self, context_name: str, event_types: frozenset[str]
    ) -> None:
        """Log deserializer registration."""
        self._log.info(
            "outbox_deserializer_registered",
            context=context_name,
            event_types=sorted(event_types),
            event_count=len(event_types),
        )


class OutboxGatewayProbe(Protocol):
    """Protocol for outbox gateway observability."""

    def message_enqueued(self, message_id: UUID, event_type: str) -> None:
        """Called when a message is appended to the outbox."""
        ...

    def message_not_found(self, message_id: UUID, operation: str) -> None:
        """Called when an operation references an unknown message id."""
        ...

    def message_already_processed(self, message_id: UUID) -> None:
        """Called when mark_processed hits an already processed message."""
        ...

    def dead_letter_requeued(self, message_id: UUID) -> None:
        """Called when a dead-lettered message is made pending again."""
        ...


class DefaultOutboxGatewayProbe:
    """Default implementation using structlog."""

    def __init__(self) -> None:
        """Initialize the probe with a logger."""
        self._log = logger.bind(component="outbox_gateway")

    def message_enqueued(self, message_id: UUID, event_type: str) -> None:
        """Log an appended message."""
        self._log.debug(
            "outbox_message_enqueued",
            message_id=str(message_id),
            event_type=event_type,
        )

    def message_not_found(self, message_id: UUID, operation: str) -> None:
        """Log an unknown message id."""
        self._log.warning(
            "outbox_message_not_found",
            message_id=str(message_id),
            operation=operation,
        )

    def message_already_processed(self, message_id: UUID) -> None:
        """Log a repeated mark_processed call."""
        self._log.debug(
            "outbox_message_already_processed", message_id=str(message_id)
        )

    def dead_letter_requeued(self, message_id: UUID) -> None:
        """Log a requeued dead letter."""
        self._log.info("outbox_dead_letter_requeued", message_id=str(message_id))


class EventRouterProbe(Protocol):
    """Protocol for in-process event router observability."""

    def handler_subscribed(self, event_type: str, handler_name: str) -> None:
        """Called when a handler subscribes to an event class."""
        ...

    def no_handlers_for_event(self, event_type: str) -> None:
        """Called when an event is routed but nobody listens for it."""
        ...


class DefaultEventRouterProbe:
    """Default implementation using structlog."""

    def __init__(self) -> None:
        """Initialize the probe with a logger."""
        self._log = logger.bind(component="event_router")

    def handler_subscribed(self, event_type: str, handler_name: str) -> None:
        """Log a handler subscription."""
        self._log.debug(
            "event_handler_subscribed", event_type=event_type, handler=handler_name
        )

    def no_handlers_for_event(self, event_type: str) -> None:
        """Log an event with no subscribers."""
        self._log.debug("event_has_no_handlers", event_type=event_type)
