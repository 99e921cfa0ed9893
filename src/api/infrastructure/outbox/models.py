"""SQLAlchemy ORM models for the outbox pattern.

This module provides the database model for the outbox table used in
the transactional outbox pattern.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, UTCDateTime
from shared_kernel.outbox.value_objects import OutboxMessage


class OutboxMessageModel(Base):
    """ORM model for the outbox_messages table.

    Stores domain events that producers appended inside their own unit of
    work and that the dispatcher has yet to deliver.

    The table uses partial indexes for efficient polling:
    - idx_outbox_messages_pending: For fetching pending messages in order
    - idx_outbox_messages_processed_at: For cleanup of old processed messages
    - idx_outbox_messages_failed: For monitoring dead-lettered messages
    """

    __tablename__ = "outbox_messages"
    __table_args__ = (
        Index(
            "idx_outbox_messages_pending",
            "created_at",
            postgresql_where=text("processed_at IS NULL AND failed_at IS NULL"),
            sqlite_where=text("processed_at IS NULL AND failed_at IS NULL"),
        ),
        Index("idx_outbox_messages_processed_at", "processed_at"),
        Index(
            "idx_outbox_messages_failed",
            "failed_at",
            postgresql_where=text("failed_at IS NOT NULL"),
            sqlite_where=text("failed_at IS NOT NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # Retry/dead-letter columns
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def is_dead_lettered(self) -> bool:
        """Check if this message has been moved to the dead-letter state."""
        return self.failed_at is not None

    def to_value_object(self) -> OutboxMessage:
        """Convert this ORM model to an OutboxMessage value object.

        Returns:
            An immutable OutboxMessage with all fields copied from this model.
        """
        return OutboxMessage(
            id=self.id,
            type=self.type,
            data=self.data,
            created_at=self.created_at,
            processed_at=self.processed_at,
            retry_count=self.retry_count,
            last_error=self.last_error,
            failed_at=self.failed_at,
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<OutboxMessageModel("
            f"id={self.id}, "
            f"type={self.type}, "
            f"processed_at={self.processed_at}, "
            f"retry_count={self.retry_count}"
            f")>"
        )
