"""Exceptions raised by the outbox components."""

from __future__ import annotations


class OutboxError(Exception):
    """Base exception for outbox operations."""

    pass


class InvalidOutboxMessageError(OutboxError, ValueError):
    """Raised when a message cannot be appended to the outbox."""

    pass


class UnknownEventTypeError(OutboxError, LookupError):
    """Raised when no deserializer is registered for an event type."""

    def __init__(self, event_type: str, registered: frozenset[str] | None = None):
        message = f"No deserializer registered for event type: {event_type}"
        if registered is not None:
            message += f". Registered types: {sorted(registered)}"
        super().__init__(message)
        self.event_type = event_type


class DuplicateEventTypeError(OutboxError, ValueError):
    """Raised when an event type is registered more than once."""

    def __init__(self, event_type: str):
        super().__init__(f"Event type already registered: {event_type}")
        self.event_type = event_type


class EventDeserializationError(OutboxError):
    """Raised when a stored payload does not match its declared schema."""

    def __init__(self, event_type: str, cause: Exception):
        super().__init__(f"Failed to deserialize {event_type}: {cause}")
        self.event_type = event_type
        self.cause = cause


class DispatchTimeoutError(OutboxError, TimeoutError):
    """Raised when the event router does not finish within the timeout."""

    def __init__(self, event_type: str, timeout_seconds: float):
        super().__init__(
            f"Dispatch of {event_type} did not complete within {timeout_seconds}s"
        )
        self.event_type = event_type
        self.timeout_seconds = timeout_seconds
