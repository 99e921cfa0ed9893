"""Domain-oriented observability infrastructure.

Probes for the shared database infrastructure, following the Domain Oriented
Observability pattern used by the outbox components.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from infrastructure.observability.probes import (
    DatabaseProbe,
    DefaultDatabaseProbe,
)

__all__ = [
    "DatabaseProbe",
    "DefaultDatabaseProbe",
]
