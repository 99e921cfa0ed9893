"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.dependencies import (
    close_database_connections,
    get_write_sessionmaker,
)
from infrastructure.logging import configure_logging
from infrastructure.outbox.dependencies import get_outbox_gateway
from infrastructure.outbox.dispatcher import OutboxDispatcher
from infrastructure.outbox.gateway import OutboxGateway
from infrastructure.outbox.registry import EventTypeRegistry
from infrastructure.outbox.router import HandlerEventRouter
from infrastructure.settings import OutboxSettings, get_settings
from infrastructure.version import __version__
from players.application.event_handlers import PlayerEventHandlers
from players.infrastructure.notifier import LoggingPlayerNotifier
from players.infrastructure.outbox.serializer import PlayerEventSerializer
from players.ports.notifications import PlayerNotifier
from shared_kernel.outbox.observability import DefaultOutboxDispatcherProbe


def build_outbox_dispatcher(
    settings: OutboxSettings,
    session_factory: async_sessionmaker[AsyncSession],
    notifier: PlayerNotifier | None = None,
) -> OutboxDispatcher:
    """Wire the registry, router and dispatcher for every bounded context.

    Each context registers its serializer with the type registry and
    subscribes its handlers to the router.
    """
    probe = DefaultOutboxDispatcherProbe()

    registry = EventTypeRegistry(probe=probe)
    registry.register_serializer(PlayerEventSerializer(), context_name="players")

    router = HandlerEventRouter()
    PlayerEventHandlers(notifier or LoggingPlayerNotifier()).register(router)

    return OutboxDispatcher.from_settings(
        settings,
        session_factory=session_factory,
        registry=registry,
        router=router,
        probe=probe,
    )


@asynccontextmanager
async def gamedesk_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Outbox dispatcher start and graceful stop (when enabled)
    - Database engine lifecycle (created lazily, disposed on shutdown)
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)

    dispatcher: OutboxDispatcher | None = None
    if settings.outbox.enabled:
        dispatcher = build_outbox_dispatcher(settings.outbox, get_write_sessionmaker())
        await dispatcher.start()
    app.state.outbox_dispatcher = dispatcher

    try:
        yield
    finally:
        if dispatcher is not None:
            await dispatcher.stop()
        await close_database_connections()


app = FastAPI(
    title="GameDesk API",
    description="Player engagement backend with transactional outbox delivery",
    version=__version__,
    lifespan=gamedesk_lifespan,
)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/outbox")
async def health_outbox(
    request: Request,
    gateway: Annotated[OutboxGateway, Depends(get_outbox_gateway)],
) -> dict:
    """Report outbox backlog and dispatcher state.

    Dead-lettered messages need operator attention, so any of them makes
    the outbox report as degraded.
    """
    dispatcher = getattr(request.app.state, "outbox_dispatcher", None)
    running = dispatcher is not None and dispatcher.is_running

    try:
        pending = await gateway.count_pending()
        dead_lettered = await gateway.count_dead_lettered()
    except Exception as e:
        return {
            "status": "error",
            "dispatcher_running": running,
            "error": str(e),
        }

    return {
        "status": "degraded" if dead_lettered else "ok",
        "dispatcher_running": running,
        "pending": pending,
        "dead_lettered": dead_lettered,
    }
