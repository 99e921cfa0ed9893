"""Outbox gateway implementation.

This module provides the SQLAlchemy implementation of the outbox gateway.
It persists messages to the outbox_messages table and exposes the narrow
set of operations the dispatcher and cleanup need.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import utc_now
from infrastructure.outbox.models import OutboxMessageModel
from shared_kernel.outbox.exceptions import InvalidOutboxMessageError
from shared_kernel.outbox.observability import (
    DefaultOutboxGatewayProbe,
    OutboxGatewayProbe,
)
from shared_kernel.outbox.value_objects import OutboxMessage

_MAX_ERROR_LENGTH = 2000

Clock = Callable[[], datetime]


class OutboxGateway:
    """SQLAlchemy implementation of the outbox gateway.

    This gateway shares the same database session as the calling service,
    ensuring that enqueues happen within the same transaction as the state
    change they describe. This is critical for the atomicity guarantee of
    the outbox pattern.

    The gateway only calls session.add(), session.flush() and
    session.execute() - it never calls session.commit(). The caller owns the
    transaction boundary.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = utc_now,
        probe: OutboxGatewayProbe | None = None,
    ) -> None:
        """Initialize the gateway with a session.

        Args:
            session: The SQLAlchemy async session (shared with calling service)
            clock: Source of timestamps for created_at/processed_at/failed_at
            probe: Optional observability probe
        """
        self._session = session
        self._clock = clock
        self._probe = probe or DefaultOutboxGatewayProbe()

    async def enqueue(
        self, event_type: str, payload: Mapping[str, Any]
    ) -> OutboxMessage:
        """Append a message to the outbox within the current transaction.

        The payload is serialized to JSON text. The transaction is not
        committed - that is the responsibility of the calling service.

        Args:
            event_type: Canonical event type name (e.g., "BonusClaimed")
            payload: JSON-serializable event data

        Returns:
            The created message

        Raises:
            InvalidOutboxMessageError: If the type is blank or the payload
                cannot be serialized
        """
        if not event_type or not event_type.strip():
            raise InvalidOutboxMessageError("Outbox message type must be non-empty")

        try:
            data = json.dumps(dict(payload))
        except (TypeError, ValueError) as e:
            raise InvalidOutboxMessageError(
                f"Payload for {event_type} is not JSON-serializable: {e}"
            ) from e

        model = OutboxMessageModel(
            id=uuid4(),
            type=event_type,
            data=data,
            created_at=self._clock(),
            processed_at=None,
            retry_count=0,
        )
        self._session.add(model)
        self._probe.message_enqueued(model.id, event_type)

        return model.to_value_object()

    async def get(self, message_id: UUID) -> OutboxMessage | None:
        """Load a message by id, or None if it does not exist."""
        model = await self._load(message_id)
        return model.to_value_object() if model is not None else None

    async def fetch_unprocessed(self, batch_size: int = 100) -> list[OutboxMessage]:
        """Fetch pending messages ordered by creation time.

        Dead-lettered messages are not pending. This is a pure read and
        does not lock or claim rows.

        Args:
            batch_size: Maximum number of messages to fetch

        Returns:
            List of pending OutboxMessage value objects, oldest first
        """
        if batch_size < 1:
            return []

        stmt = (
            select(OutboxMessageModel)
            .where(OutboxMessageModel.processed_at.is_(None))
            .where(OutboxMessageModel.failed_at.is_(None))
            .order_by(OutboxMessageModel.created_at, OutboxMessageModel.id)
            .limit(batch_size)
            .execution_options(populate_existing=True)
        )

        result = await self._session.execute(stmt)
        models = result.scalars().all()

        return [model.to_value_object() for model in models]

    async def mark_processed(self, message_id: UUID) -> bool:
        """Mark a message as processed.

        Sets processed_at to the current time only if it is not already set,
        so the first value wins. Unknown ids are logged and ignored.

        Args:
            message_id: The UUID of the message to mark as processed

        Returns:
            True if the message transitioned to processed, False otherwise
        """
        stmt = (
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id == message_id)
            .where(OutboxMessageModel.processed_at.is_(None))
            .values(processed_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount:
            return True

        if await self._exists(message_id):
            self._probe.message_already_processed(message_id)
        else:
            self._probe.message_not_found(message_id, "mark_processed")
        return False

    async def cleanup_processed_before(self, cutoff: datetime) -> int:
        """Delete processed messages older than the cutoff.

        Args:
            cutoff: Messages processed strictly before this instant are deleted

        Returns:
            Number of deleted messages
        """
        stmt = (
            delete(OutboxMessageModel)
            .where(OutboxMessageModel.processed_at.is_not(None))
            .where(OutboxMessageModel.processed_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def record_failure(self, message_id: UUID, error: str) -> int:
        """Record a failed dispatch attempt.

        The message stays pending and will be retried on the next poll.

        Args:
            message_id: The message that failed
            error: The error that caused the failure

        Returns:
            The new retry count, or 0 if the message does not exist
        """
        model = await self._load(message_id)
        if model is None:
            self._probe.message_not_found(message_id, "record_failure")
            return 0

        model.retry_count += 1
        model.last_error = error[:_MAX_ERROR_LENGTH]
        await self._session.flush()
        return model.retry_count

    async def mark_dead_lettered(self, message_id: UUID, error: str) -> bool:
        """Move a pending message to the dead-letter state.

        Sets failed_at to mark the message as permanently failed. The message
        will no longer be picked up by polling and is never cleaned up.

        Args:
            message_id: The message to dead-letter
            error: The error that caused the failure

        Returns:
            True if the message was moved, False if unknown or not pending
        """
        model = await self._load(message_id)
        if model is None:
            self._probe.message_not_found(message_id, "mark_dead_lettered")
            return False
        if model.processed_at is not None or model.failed_at is not None:
            return False

        model.failed_at = self._clock()
        model.last_error = error[:_MAX_ERROR_LENGTH]
        await self._session.flush()
        return True

    async def fetch_dead_lettered(self, limit: int = 100) -> list[OutboxMessage]:
        """Fetch dead-lettered messages, oldest failure first."""
        stmt = (
            select(OutboxMessageModel)
            .where(OutboxMessageModel.failed_at.is_not(None))
            .where(OutboxMessageModel.processed_at.is_(None))
            .order_by(OutboxMessageModel.failed_at, OutboxMessageModel.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [model.to_value_object() for model in result.scalars().all()]

    async def requeue_dead_lettered(self, message_id: UUID) -> bool:
        """Make a dead-lettered message pending again.

        The retry count is reset; last_error is kept for reference.

        Returns:
            True if the message was requeued, False otherwise
        """
        model = await self._load(message_id)
        if model is None:
            self._probe.message_not_found(message_id, "requeue_dead_lettered")
            return False
        if model.failed_at is None:
            return False

        model.failed_at = None
        model.retry_count = 0
        await self._session.flush()
        self._probe.dead_letter_requeued(message_id)
        return True

    async def count_pending(self) -> int:
        """Count messages waiting for dispatch."""
        stmt = (
            select(func.count())
            .select_from(OutboxMessageModel)
            .where(OutboxMessageModel.processed_at.is_(None))
            .where(OutboxMessageModel.failed_at.is_(None))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def count_dead_lettered(self) -> int:
        """Count messages in the dead-letter state."""
        stmt = (
            select(func.count())
            .select_from(OutboxMessageModel)
            .where(OutboxMessageModel.failed_at.is_not(None))
            .where(OutboxMessageModel.processed_at.is_(None))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def _load(self, message_id: UUID) -> OutboxMessageModel | None:
        # populate_existing: another session (the dispatcher) may have changed the row
        return await self._session.get(
            OutboxMessageModel, message_id, populate_existing=True
        )

    async def _exists(self, message_id: UUID) -> bool:
        stmt = select(OutboxMessageModel.id).where(OutboxMessageModel.id == message_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
