"""Outbox pattern implementation for reliable event propagation.

This module provides the transactional outbox pattern: producers append
messages alongside their own state changes, and a background dispatcher
turns them into delivered domain events.
"""

from shared_kernel.outbox.exceptions import (
    DispatchTimeoutError,
    DuplicateEventTypeError,
    EventDeserializationError,
    InvalidOutboxMessageError,
    OutboxError,
    UnknownEventTypeError,
)
from shared_kernel.outbox.ports import (
    EventDeserializer,
    EventRouter,
    EventSerializer,
    EventSubscriber,
    IOutboxGateway,
)
from shared_kernel.outbox.value_objects import MessageStatus, OutboxMessage

__all__ = [
    "DispatchTimeoutError",
    "DuplicateEventTypeError",
    "EventDeserializationError",
    "EventDeserializer",
    "EventRouter",
    "EventSerializer",
    "EventSubscriber",
    "IOutboxGateway",
    "InvalidOutboxMessageError",
    "MessageStatus",
    "OutboxError",
    "OutboxMessage",
    "UnknownEventTypeError",
]
