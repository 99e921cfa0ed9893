"""Producer side of the players outbox integration."""

from __future__ import annotations

from shared_kernel.outbox.ports import IOutboxGateway
from shared_kernel.outbox.value_objects import OutboxMessage

from players.domain.events import PlayerEvent
from players.infrastructure.outbox.serializer import PlayerEventSerializer


class PlayerEventPublisher:
    """Appends players events to the outbox.

    The gateway is bound to the caller's session, so the message commits or
    rolls back together with the state change that raised the event.
    """

    def __init__(
        self,
        gateway: IOutboxGateway,
        serializer: PlayerEventSerializer | None = None,
    ) -> None:
        self._gateway = gateway
        self._serializer = serializer or PlayerEventSerializer()

    async def publish(self, event: PlayerEvent) -> OutboxMessage:
        """Enqueue an event under its canonical type name."""
        return await self._gateway.enqueue(
            self._serializer.event_type_of(event), self._serializer.serialize(event)
        )

    async def publish_all(self, events: list[PlayerEvent]) -> list[OutboxMessage]:
        """Enqueue several events in order."""
        return [await self.publish(event) for event in events]
