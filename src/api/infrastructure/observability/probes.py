"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class DatabaseProbe(Protocol):
    """Domain probe for database engine observability.

    This probe captures domain-significant events related to the database
    engine lifecycle without exposing logging implementation details.
    """

    def engine_created(self, backend: str) -> None:
        """Record that the engine and its pool were created."""
        ...

    def engine_creation_failed(self, error: Exception) -> None:
        """Record that the engine could not be created."""
        ...

    def engine_disposed(self) -> None:
        """Record that the engine and its pool were disposed."""
        ...


class DefaultDatabaseProbe:
    """Default implementation of DatabaseProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def engine_created(self, backend: str) -> None:
        """Record that the engine and its pool were created."""
        self._logger.info("database_engine_created", backend=backend)

    def engine_creation_failed(self, error: Exception) -> None:
        """Record that the engine could not be created."""
        self._logger.error("database_engine_creation_failed", error=str(error))

    def engine_disposed(self) -> None:
        """Record that the engine and its pool were disposed."""
        self._logger.info("database_engine_disposed")
