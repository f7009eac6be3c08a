"""Courier adapter factory.

Resolves a shipment's carrier to the adapter that books and manages its return
leg. Each engine owns its own factory; tests build one around a FakeCourierAdapter
and inspect its calls.
"""

from rto.courier.fake_adapter import FakeCourierAdapter
from rto.courier.port import CourierAdapter
from rto.courier.registry import CourierRegistry
from rto.errors import CourierNotSupported


class CourierAdapterFactory:
    """Carrier name → adapter, with an optional fallback adapter."""

    def __init__(
        self,
        default_adapter: CourierAdapter | None = None,
        registry: CourierRegistry | None = None,
    ) -> None:
        self.default_adapter = default_adapter
        self.registry = registry or CourierRegistry()
        self._adapters: dict[str, CourierAdapter] = {}

    def register(self, carrier: str, adapter: CourierAdapter) -> None:
        self._adapters[self.registry.canonicalize(carrier)] = adapter

    def get_provider(self, carrier: str | None) -> CourierAdapter:
        adapter = self._adapters.get(self.registry.canonicalize(carrier), self.default_adapter)
        if adapter is None:
            raise CourierNotSupported(carrier)
        return adapter


def build_courier_factory(adapter: str = "fake") -> CourierAdapterFactory:
    """Build the factory for the configured adapter (``RTO_COURIER_ADAPTER``)."""
    if adapter == "fake":
        return CourierAdapterFactory(default_adapter=FakeCourierAdapter())
    raise ValueError(f"Unknown courier adapter: {adapter}")
