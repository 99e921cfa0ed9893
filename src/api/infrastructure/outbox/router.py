"""In-process event router.

Delivers typed domain events to the async handlers each bounded context
subscribes at startup.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from shared_kernel.outbox.observability import (
    DefaultEventRouterProbe,
    EventRouterProbe,
)

EventHandler = Callable[[Any], Awaitable[None]]


class HandlerEventRouter:
    """Routes an event to every handler subscribed to its class.

    Handlers run sequentially in subscription order. A handler exception
    propagates to the dispatcher, which treats it as transient and retries
    the whole message later, so handlers must be idempotent and must
    swallow failures that can never succeed.
    """

    def __init__(self, probe: EventRouterProbe | None = None) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}
        self._probe = probe or DefaultEventRouterProbe()

    def subscribe(self, event_class: type, handler: EventHandler) -> None:
        """Subscribe a handler to events of exactly this class."""
        self._handlers.setdefault(event_class, []).append(handler)
        self._probe.handler_subscribed(
            event_class.__name__, getattr(handler, "__qualname__", repr(handler))
        )

    def handlers_for(self, event_class: type) -> tuple[EventHandler, ...]:
        """Return the handlers subscribed to an event class."""
        return tuple(self._handlers.get(event_class, ()))

    async def dispatch(self, event: Any) -> None:
        """Deliver an event to its handlers.

        Events nobody listens for are absorbed.
        """
        handlers = self._handlers.get(type(event))
        if not handlers:
            self._probe.no_handlers_for_event(type(event).__name__)
            return

        for handler in handlers:
            await handler(event)
