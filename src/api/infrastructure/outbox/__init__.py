"""Infrastructure layer for the outbox pattern.

Contains the SQLAlchemy model, gateway, event type registry, router and
dispatcher for outbox persistence and processing.
"""

from infrastructure.outbox.dispatcher import CycleResult, OutboxDispatcher
from infrastructure.outbox.gateway import OutboxGateway
from infrastructure.outbox.models import OutboxMessageModel
from infrastructure.outbox.registry import EventTypeRegistry
from infrastructure.outbox.router import HandlerEventRouter

__all__ = [
    "CycleResult",
    "EventTypeRegistry",
    "HandlerEventRouter",
    "OutboxDispatcher",
    "OutboxGateway",
    "OutboxMessageModel",
]
