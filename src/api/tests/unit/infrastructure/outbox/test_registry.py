"""Unit tests for EventTypeRegistry."""

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest

from infrastructure.outbox.registry import EventTypeRegistry
from shared_kernel.outbox.exceptions import (
    DuplicateEventTypeError,
    EventDeserializationError,
    UnknownEventTypeError,
)


@dataclass(frozen=True)
class OrderPlaced:
    order_id: str
    total: int


class OrderSerializer:
    """Minimal serializer for a single event type."""

    def supported_event_types(self) -> frozenset[str]:
        return frozenset({"OrderPlaced"})

    def serialize(self, event: Any) -> dict[str, Any]:
        return {"order_id": event.order_id, "total": event.total}

    def deserialize(self, event_type: str, payload: dict[str, Any]) -> Any:
        return OrderPlaced(**payload)


class TestEventTypeRegistryRegistration:
    """Tests for registering deserializers."""

    def test_register_and_resolve(self):
        """A registered deserializer should be resolvable by name."""
        registry = EventTypeRegistry()
        deserializer = MagicMock()

        registry.register("OrderPlaced", deserializer)

        assert registry.resolve("OrderPlaced") is deserializer
        assert registry.supported_event_types() == frozenset({"OrderPlaced"})

    def test_resolve_unknown_returns_none(self):
        """resolve() should not raise for unknown types."""
        assert EventTypeRegistry().resolve("UnknownEventV99") is None

    def test_duplicate_registration_raises(self):
        """Registering the same name twice is a startup error."""
        registry = EventTypeRegistry()
        registry.register("OrderPlaced", MagicMock())

        with pytest.raises(DuplicateEventTypeError, match="OrderPlaced"):
            registry.register("OrderPlaced", MagicMock())

    def test_register_serializer_registers_all_types(self):
        """Every type the serializer supports should become resolvable."""
        registry = EventTypeRegistry()
        registry.register_serializer(OrderSerializer())

        event = registry.deserialize("OrderPlaced", {"order_id": "o-1", "total": 3})

        assert event == OrderPlaced(order_id="o-1", total=3)

    def test_register_serializer_rejects_overlap_without_partial_registration(
        self,
    ):
        """A conflicting serializer should leave the registry unchanged."""
        registry = EventTypeRegistry()
        existing = MagicMock()
        registry.register("OrderPlaced", existing)

        with pytest.raises(DuplicateEventTypeError):
            registry.register_serializer(OrderSerializer())

        assert registry.resolve("OrderPlaced") is existing

    def test_registration_is_additive_across_contexts(self):
        """Registering one context must not affect another."""
        registry = EventTypeRegistry()
        first = MagicMock()
        registry.register("BonusClaimed", first, context_name="players")
        registry.register_serializer(OrderSerializer(), context_name="orders")

        assert registry.resolve("BonusClaimed") is first
        assert registry.supported_event_types() == frozenset(
            {"BonusClaimed", "OrderPlaced"}
        )

    def test_registration_reported_to_probe(self):
        """Registrations should be visible through the probe."""
        probe = MagicMock()
        registry = EventTypeRegistry(probe=probe)

        registry.register_serializer(OrderSerializer(), context_name="orders")

        probe.deserializer_registered.assert_called_once_with(
            "orders", frozenset({"OrderPlaced"})
        )


class TestEventTypeRegistryDeserialize:
    """Tests for EventTypeRegistry.deserialize()."""

    def test_unknown_type_raises(self):
        """deserialize() should raise for unregistered types."""
        registry = EventTypeRegistry()

        with pytest.raises(UnknownEventTypeError) as exc_info:
            registry.deserialize("UnknownEventV99", {})

        assert exc_info.value.event_type == "UnknownEventV99"

    def test_malformed_payload_is_wrapped(self):
        """Deserializer failures should surface as EventDeserializationError."""
        registry = EventTypeRegistry()
        registry.register_serializer(OrderSerializer())

        with pytest.raises(EventDeserializationError) as exc_info:
            registry.deserialize("OrderPlaced", {"order_id": "o-1"})

        assert exc_info.value.event_type == "OrderPlaced"
        assert isinstance(exc_info.value.cause, TypeError)
