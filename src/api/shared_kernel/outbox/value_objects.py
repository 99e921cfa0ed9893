"""Value objects for the outbox pattern.

Value objects are immutable descriptors that provide type safety and
domain semantics for outbox messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class MessageStatus(StrEnum):
    """Lifecycle state of an outbox message as seen by the dispatcher."""

    PENDING = "pending"
    PROCESSED = "processed"
    DEAD_LETTERED = "dead_lettered"


@dataclass(frozen=True)
class OutboxMessage:
    """Represents a single message in the outbox table.

    This is an immutable snapshot of a message as it exists in the store.
    Producers only ever append messages; the dispatcher is the only reader
    and the only component that moves a message out of the pending state.

    Attributes:
        id: Unique identifier assigned at creation
        type: Canonical event type name used to resolve a deserializer
        data: Opaque serialized payload (JSON text)
        created_at: When the message was appended; defines batch order
        processed_at: When the message was processed or dropped (None if pending)
        retry_count: Number of failed dispatch attempts so far
        last_error: The most recent processing error (if any)
        failed_at: When the message was moved to the dead-letter state
    """

    id: UUID
    type: str
    data: str
    created_at: datetime
    processed_at: datetime | None = None
    retry_count: int = 0
    last_error: str | None = None
    failed_at: datetime | None = None

    @property
    def is_processed(self) -> bool:
        """Check if this message has been processed (or dropped).

        Returns:
            True if processed_at is set, False otherwise
        """
        return self.processed_at is not None

    @property
    def is_dead_lettered(self) -> bool:
        """Check if this message has been moved to the dead-letter state.

        Returns:
            True if failed_at is set, False otherwise
        """
        return self.failed_at is not None

    @property
    def status(self) -> MessageStatus:
        """Derive the lifecycle state from the timestamps."""
        if self.processed_at is not None:
            return MessageStatus.PROCESSED
        if self.failed_at is not None:
            return MessageStatus.DEAD_LETTERED
        return MessageStatus.PENDING
