"""Courier port — abstract interface for reverse-logistics courier integrations.

The RTO workflow programs against ``CourierAdapter``; concrete adapters are
selected per carrier through ``CourierAdapterFactory``. Pickup scheduling is an
optional capability: adapters that support it return a ``PickupScheduler`` from
``pickup_scheduler()``, the rest return ``None``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReverseShipmentRequest:
    """Everything a courier needs to book the return leg of a shipment."""

    shipment_id: str
    awb: str
    order_id: str
    company_id: str
    warehouse_id: str | None
    carrier: str | None
    reason: str
    weight: float | None = None
    customer_name: str | None = None
    customer_phone: str | None = None


@dataclass(frozen=True)
class ReverseShipmentResult:
    """Result of booking a reverse shipment."""

    success: bool
    reverse_awb: str | None = None
    label_url: str | None = None
    estimated_pickup: str | None = None
    metadata: dict = field(default_factory=dict)
    failure_reason: str | None = None


@dataclass(frozen=True)
class CourierTracking:
    """Tracking snapshot of a reverse shipment as reported by the courier.

    ``events`` is a list of dicts with keys: status, location, description,
    occurred_at (ISO timestamp). Couriers may report them in any order.
    """

    success: bool
    status: str | None = None
    current_location: str | None = None
    events: list[dict] = field(default_factory=list)
    estimated_delivery: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class CancellationResult:
    """Result of cancelling a reverse shipment."""

    cancelled: bool
    reason: str | None = None


@dataclass(frozen=True)
class PickupConfirmation:
    """Result of booking a pickup slot."""

    success: bool
    confirmation_id: str | None = None
    pickup_date: str | None = None
    slot: str | None = None
    failure_reason: str | None = None


class PickupScheduler(ABC):
    """Optional courier capability: book a reverse pickup slot."""

    @abstractmethod
    def schedule_pickup(self, reverse_awb: str, pickup_date: str, slot: str) -> PickupConfirmation:
        ...


class CourierAdapter(ABC):
    """Abstract interface for courier adapters."""

    @abstractmethod
    def create_reverse_shipment(self, request: ReverseShipmentRequest) -> ReverseShipmentResult:
        """Book the return leg with the courier."""
        ...

    @abstractmethod
    def track_shipment(self, reverse_awb: str) -> CourierTracking:
        """Get the current tracking status of a reverse shipment."""
        ...

    @abstractmethod
    def cancel_reverse_shipment(self, reverse_awb: str, reason: str) -> CancellationResult:
        """Cancel a reverse shipment that has not been picked up yet."""
        ...

    def pickup_scheduler(self) -> PickupScheduler | None:
        """Return the pickup capability, or None if the courier has none."""
        return None
