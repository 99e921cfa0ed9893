"""Unit tests for the main FastAPI application."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from infrastructure.outbox.dependencies import get_outbox_gateway
from infrastructure.outbox.dispatcher import OutboxDispatcher
from infrastructure.settings import OutboxSettings
from main import app, build_outbox_dispatcher
from players.domain.events import BonusClaimed, PlayerSegmentChanged


@pytest.fixture
def gateway() -> MagicMock:
    """Provide a mocked outbox gateway."""
    gateway = MagicMock()
    gateway.count_pending = AsyncMock(return_value=3)
    gateway.count_dead_lettered = AsyncMock(return_value=0)
    return gateway


@pytest.fixture
def client(gateway: MagicMock):
    """Provide a test client with the gateway dependency overridden."""
    app.dependency_overrides[get_outbox_gateway] = lambda: gateway
    app.state.outbox_dispatcher = None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def lifespan_settings() -> MagicMock:
    """Provide settings for running the lifespan."""
    settings = MagicMock()
    settings.debug = False
    settings.outbox = OutboxSettings(enabled=True)
    return settings


class TestHealthEndpoints:
    """Tests for the health endpoints."""

    def test_health(self, client: TestClient) -> None:
        """Basic health should always be ok."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_outbox_health_reports_counts(self, client: TestClient) -> None:
        """Outbox health should report the backlog."""
        response = client.get("/health/outbox")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "dispatcher_running": False,
            "pending": 3,
            "dead_lettered": 0,
        }

    def test_outbox_health_degraded_with_dead_letters(
        self, client: TestClient, gateway: MagicMock
    ) -> None:
        """Dead-lettered messages should mark the outbox as degraded."""
        gateway.count_dead_lettered.return_value = 2

        body = client.get("/health/outbox").json()

        assert body["status"] == "degraded"
        assert body["dead_lettered"] == 2

    def test_outbox_health_reports_database_errors(
        self, client: TestClient, gateway: MagicMock
    ) -> None:
        """Database failures should be reported, not raised."""
        gateway.count_pending.side_effect = RuntimeError("connection refused")

        body = client.get("/health/outbox").json()

        assert body["status"] == "error"
        assert body["error"] == "connection refused"


class TestBuildOutboxDispatcher:
    """Tests for wiring the dispatcher."""

    def test_registers_players_context(self) -> None:
        """The players serializer and handlers should be wired in."""
        dispatcher = build_outbox_dispatcher(
            OutboxSettings(batch_size=10), session_factory=MagicMock()
        )

        assert isinstance(dispatcher, OutboxDispatcher)
        assert dispatcher._batch_size == 10
        assert dispatcher._registry.supported_event_types() == frozenset(
            {"BonusClaimed", "PlayerSegmentChanged"}
        )
        assert len(dispatcher._router.handlers_for(BonusClaimed)) == 1
        assert len(dispatcher._router.handlers_for(PlayerSegmentChanged)) == 1


class TestLifespan:
    """Tests for the application lifespan."""

    def test_starts_and_stops_dispatcher(
        self, lifespan_settings: MagicMock, gateway: MagicMock
    ) -> None:
        """The dispatcher runs for the lifetime of the application."""
        dispatcher = MagicMock()
        dispatcher.start = AsyncMock()
        dispatcher.stop = AsyncMock()
        dispatcher.is_running = True
        app.dependency_overrides[get_outbox_gateway] = lambda: gateway

        try:
            with (
                patch("main.get_settings", return_value=lifespan_settings),
                patch("main.configure_logging"),
                patch("main.get_write_sessionmaker"),
                patch("main.build_outbox_dispatcher", return_value=dispatcher),
                patch("main.close_database_connections", new=AsyncMock()) as close,
            ):
                with TestClient(app) as client:
                    body = client.get("/health/outbox").json()
                    dispatcher.start.assert_awaited_once()

                dispatcher.stop.assert_awaited_once()
                close.assert_awaited_once()
        finally:
            app.dependency_overrides.clear()

        assert body["dispatcher_running"] is True

    def test_disabled_outbox_does_not_start_dispatcher(
        self, lifespan_settings: MagicMock
    ) -> None:
        """With the outbox disabled no dispatcher is built."""
        lifespan_settings.outbox = OutboxSettings(enabled=False)

        with (
            patch("main.get_settings", return_value=lifespan_settings),
            patch("main.configure_logging"),
            patch("main.build_outbox_dispatcher") as build,
            patch("main.close_database_connections", new=AsyncMock()),
        ):
            with TestClient(app):
                pass

        build.assert_not_called()
        assert app.state.outbox_dispatcher is None
