"""Outbox dispatcher for delivering outbox messages as domain events.

The dispatcher runs as a single background task within the FastAPI
application, polling the outbox and handing each message to the event
router, oldest first.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.models import utc_now
from infrastructure.outbox.gateway import OutboxGateway
from shared_kernel.outbox.exceptions import (
    DispatchTimeoutError,
    EventDeserializationError,
)
from shared_kernel.outbox.ports import EventDeserializer, EventRouter
from shared_kernel.outbox.value_objects import OutboxMessage

if TYPE_CHECKING:
    from infrastructure.outbox.registry import EventTypeRegistry
    from infrastructure.settings import OutboxSettings
    from shared_kernel.outbox.observability import OutboxDispatcherProbe


class MessageOutcome(StrEnum):
    """What a single dispatch attempt did to a message."""

    DISPATCHED = "dispatched"
    DROPPED = "dropped"
    FAILED = "failed"
    DEAD_LETTERED = "dead_lettered"


@dataclass(frozen=True)
class CycleResult:
    """Summary of one poll cycle."""

    fetched: int = 0
    dispatched: int = 0
    dropped: int = 0
    failed: int = 0
    dead_lettered: int = 0
    cleaned_up: int | None = None


class OutboxDispatcher:
    """Background dispatcher that turns outbox messages into domain events.

    Exactly one poll loop runs per process. Within a batch, messages are
    processed sequentially in created_at order and each message is isolated:
    a failure is recorded and the loop moves on to the next one.

    Per message:
    1. Unresolved type: dropped (marked processed) with a warning
    2. Payload does not deserialize: dead-lettered (or left pending when
       dead_letter_malformed_payloads is off)
    3. Dispatch succeeds: marked processed
    4. Dispatch fails or times out: left pending and retried next cycle,
       dead-lettered once max_dispatch_attempts is reached (if set)

    The outcome of every message is committed before the next one starts,
    so a crash repeats at most the in-flight message (at-least-once).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: EventTypeRegistry,
        router: EventRouter,
        probe: OutboxDispatcherProbe,
        poll_interval_seconds: float = 10.0,
        cleanup_interval_seconds: float = 3600.0,
        retention: timedelta = timedelta(days=7),
        batch_size: int = 100,
        dispatch_timeout_seconds: float = 30.0,
        max_dispatch_attempts: int | None = None,
        dead_letter_malformed_payloads: bool = True,
        shutdown_grace_seconds: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            session_factory: Factory for creating database sessions
            registry: Resolves event type names to deserializers
            router: Receives the typed events
            probe: Observability probe for logging/metrics
            poll_interval_seconds: Delay between polls
            cleanup_interval_seconds: Delay between cleanups of old messages
            retention: How long processed messages are kept
            batch_size: Maximum messages to process per cycle
            dispatch_timeout_seconds: Upper bound on one router dispatch
            max_dispatch_attempts: Failures before dead-lettering (None retries forever)
            dead_letter_malformed_payloads: Dead-letter payloads that fail to deserialize
            shutdown_grace_seconds: How long stop() waits for in-flight work
            clock: Source of wall-clock time
        """
        self._session_factory = session_factory
        self._registry = registry
        self._router = router
        self._probe = probe
        self._poll_interval = poll_interval_seconds
        self._cleanup_interval = timedelta(seconds=cleanup_interval_seconds)
        self._retention = retention
        self._batch_size = batch_size
        self._dispatch_timeout = dispatch_timeout_seconds
        self._max_dispatch_attempts = max_dispatch_attempts
        self._dead_letter_malformed = dead_letter_malformed_payloads
        self._shutdown_grace = shutdown_grace_seconds
        self._clock = clock
        self._running = False
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._last_cleanup: datetime | None = None

    @classmethod
    def from_settings(
        cls,
        settings: OutboxSettings,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        registry: EventTypeRegistry,
        router: EventRouter,
        probe: OutboxDispatcherProbe,
        clock: Callable[[], datetime] = utc_now,
    ) -> OutboxDispatcher:
        """Build a dispatcher from the outbox settings section."""
        return cls(
            session_factory=session_factory,
            registry=registry,
            router=router,
            probe=probe,
            poll_interval_seconds=settings.poll_interval_seconds,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
            retention=settings.retention,
            batch_size=settings.batch_size,
            dispatch_timeout_seconds=settings.dispatch_timeout_seconds,
            max_dispatch_attempts=settings.max_dispatch_attempts,
            dead_letter_malformed_payloads=settings.dead_letter_malformed_payloads,
            shutdown_grace_seconds=settings.shutdown_grace_seconds,
            clock=clock,
        )

    @property
    def is_running(self) -> bool:
        """Whether the poll loop has been started and not stopped."""
        return self._running

    async def start(self) -> None:
        """Start the poll loop as a background task.

        Calling start() on a running dispatcher does nothing.
        """
        if self._task is not None:
            return

        self._running = True
        self._stop_requested.clear()
        self._probe.dispatcher_started()
        self._task = asyncio.create_task(self._poll_loop(), name="outbox-dispatcher")

    async def stop(self) -> None:
        """Gracefully stop the dispatcher.

        Signals the loop to stop and waits up to the shutdown grace period
        for the in-flight message to finish. No new batch or message is
        started once stop() is called; if the grace period runs out the
        loop task is cancelled.
        """
        self._running = False
        self._stop_requested.set()

        task = self._task
        if task is None:
            return

        done, _ = await asyncio.wait({task}, timeout=self._shutdown_grace)
        if not done:
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        self._task = None
        self._probe.dispatcher_stopped()

    async def run_cycle(self) -> CycleResult:
        """Run one dispatch cycle: cleanup if due, then one batch.

        Returns:
            Counts of what happened to the fetched messages
        """
        cleaned_up = await self._cleanup_if_due()

        async with self._session_factory() as session:
            gateway = self._gateway(session)
            messages = await gateway.fetch_unprocessed(self._batch_size)
            # End the read transaction before dispatching
            await session.commit()
            self._probe.batch_fetched(len(messages))

            outcomes: list[MessageOutcome] = []
            for message in messages:
                if self._stop_requested.is_set():
                    break
                outcomes.append(await self._process_message(message, session))

        result = CycleResult(
            fetched=len(messages),
            dispatched=outcomes.count(MessageOutcome.DISPATCHED),
            dropped=outcomes.count(MessageOutcome.DROPPED),
            failed=outcomes.count(MessageOutcome.FAILED),
            dead_lettered=outcomes.count(MessageOutcome.DEAD_LETTERED),
            cleaned_up=cleaned_up,
        )
        self._probe.batch_processed(result.dispatched, result.fetched)
        return result

    async def run_cleanup(self, now: datetime | None = None) -> int:
        """Delete processed messages older than the retention window.

        Args:
            now: Reference time (defaults to the dispatcher clock)

        Returns:
            Number of deleted messages
        """
        cutoff = (now or self._clock()) - self._retention

        async with self._session_factory() as session:
            deleted = await self._gateway(session).cleanup_processed_before(cutoff)
            await session.commit()

        self._probe.cleanup_completed(cutoff, deleted)
        return deleted

    async def _poll_loop(self) -> None:
        """Poll the outbox until stop() is called.

        Runs a cycle, then sleeps for poll_interval_seconds. The stop
        signal is checked before each cycle and interrupts the sleep.
        """
        self._probe.poll_loop_started()

        while not self._stop_requested.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                # Log error but continue polling
                self._probe.poll_loop_error(str(e))

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    self._stop_requested.wait(), timeout=self._poll_interval
                )

    async def _cleanup_if_due(self) -> int | None:
        """Run cleanup when the cleanup interval has elapsed.

        The first cycle always cleans up. Failures are logged and the next
        attempt waits for a full interval.
        """
        now = self._clock()
        if (
            self._last_cleanup is not None
            and now - self._last_cleanup < self._cleanup_interval
        ):
            return None

        self._last_cleanup = now
        try:
            return await self.run_cleanup(now)
        except Exception as e:
            self._probe.cleanup_failed(str(e))
            return None

    async def _process_message(
        self, message: OutboxMessage, session: AsyncSession
    ) -> MessageOutcome:
        """Process one message, persisting its outcome.

        Never raises for per-message problems; a failure to persist the
        outcome is logged and the message will be seen again.
        """
        try:
            outcome, error = await self._deliver(message, self._gateway(session))
            await session.commit()
        except Exception as e:
            await session.rollback()
            self._probe.message_update_failed(message.id, str(e))
            return MessageOutcome.FAILED

        self._report(message, outcome, error)
        return outcome

    async def _deliver(
        self, message: OutboxMessage, gateway: OutboxGateway
    ) -> tuple[MessageOutcome, str | None]:
        """Resolve, deserialize and dispatch a message, recording the result.

        Returns:
            The outcome and, for failures, the error that caused it
        """
        deserializer = self._registry.resolve(message.type)
        if deserializer is None:
            await gateway.mark_processed(message.id)
            return MessageOutcome.DROPPED, None

        try:
            event = self._deserialize(message, deserializer)
        except EventDeserializationError as e:
            self._probe.event_deserialization_failed(message.id, message.type, str(e))
            if self._dead_letter_malformed:
                await gateway.mark_dead_lettered(message.id, str(e))
                return MessageOutcome.DEAD_LETTERED, str(e)
            await gateway.record_failure(message.id, str(e))
            return MessageOutcome.FAILED, str(e)

        try:
            await self._dispatch(message, event)
        except Exception as e:
            return await self._record_dispatch_failure(message, str(e), gateway)

        await gateway.mark_processed(message.id)
        return MessageOutcome.DISPATCHED, None

    def _deserialize(
        self, message: OutboxMessage, deserializer: EventDeserializer
    ) -> Any:
        """Decode the stored JSON text and build the typed event."""
        try:
            payload = json.loads(message.data)
            if not isinstance(payload, dict):
                raise TypeError(
                    f"expected a JSON object, got {type(payload).__name__}"
                )
            return deserializer(payload)
        except Exception as e:
            raise EventDeserializationError(message.type, e) from e

    async def _dispatch(self, message: OutboxMessage, event: Any) -> None:
        """Hand the event to the router, bounded by the dispatch timeout."""
        try:
            await asyncio.wait_for(
                self._router.dispatch(event), timeout=self._dispatch_timeout
            )
        except TimeoutError as e:
            raise DispatchTimeoutError(message.type, self._dispatch_timeout) from e

    async def _record_dispatch_failure(
        self, message: OutboxMessage, error: str, gateway: OutboxGateway
    ) -> tuple[MessageOutcome, str]:
        """Handle a dispatch failure, with retry or dead-lettering.

        Increments the retry count and either leaves the message pending
        for the next cycle or dead-letters it if max attempts are reached.
        """
        retry_count = await gateway.record_failure(message.id, error)

        if (
            self._max_dispatch_attempts is not None
            and retry_count >= self._max_dispatch_attempts
        ):
            await gateway.mark_dead_lettered(message.id, error)
            return MessageOutcome.DEAD_LETTERED, error

        self._probe.event_dispatch_failed(message.id, message.type, error, retry_count)
        return MessageOutcome.FAILED, error

    def _report(
        self, message: OutboxMessage, outcome: MessageOutcome, error: str | None
    ) -> None:
        """Emit the probe event for a committed outcome."""
        match outcome:
            case MessageOutcome.DISPATCHED:
                self._probe.event_dispatched(message.id, message.type)
            case MessageOutcome.DROPPED:
                self._probe.unknown_event_type_dropped(message.id, message.type)
            case MessageOutcome.DEAD_LETTERED:
                self._probe.event_dead_lettered(message.id, message.type, error or "")
            case MessageOutcome.FAILED:
                pass

    def _gateway(self, session: AsyncSession) -> OutboxGateway:
        return OutboxGateway(session, clock=self._clock)
