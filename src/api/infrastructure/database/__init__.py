"""Database infrastructure - shared connection primitives."""

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
]
