"""Shipment aggregate — the forward shipment that failed delivery.

Shipments are owned by the shipping platform. The RTO engine reads their
delivery status and writes only the RTO part of the status vocabulary:

    ndr → rto_initiated → rto_in_transit → rto_delivered
    rto_initiated → rto_cancelled
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String

from rto.domain import rto
from rto.errors import InvalidState


class ShipmentStatus(Enum):
    CREATED = "created"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    NDR = "ndr"
    DELIVERED = "delivered"
    RTO_INITIATED = "rto_initiated"
    RTO_IN_TRANSIT = "rto_in_transit"
    RTO_DELIVERED = "rto_delivered"
    RTO_CANCELLED = "rto_cancelled"


RTO_SHIPMENT_STATUSES = frozenset(
    {
        ShipmentStatus.RTO_INITIATED.value,
        ShipmentStatus.RTO_IN_TRANSIT.value,
        ShipmentStatus.RTO_DELIVERED.value,
        ShipmentStatus.RTO_CANCELLED.value,
    }
)

# Shipment statuses that mean a return leg is already under way
ACTIVE_RTO_SHIPMENT_STATUSES = frozenset(
    {
        ShipmentStatus.RTO_INITIATED.value,
        ShipmentStatus.RTO_IN_TRANSIT.value,
        ShipmentStatus.RTO_DELIVERED.value,
    }
)


@rto.aggregate
class Shipment:
    awb = String(required=True, max_length=100)
    order_id = Identifier(required=True)
    company_id = Identifier(required=True)
    warehouse_id = Identifier()
    carrier = String(max_length=100)
    status = String(max_length=50, default=ShipmentStatus.CREATED.value)
    weight = Float(default=0.5)  # kg
    zone = String(max_length=20)
    customer_name = String(max_length=200)
    customer_phone = String(max_length=20)
    rto_reason = String(max_length=50)
    rto_initiated_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    def is_delivered(self) -> bool:
        return self.status == ShipmentStatus.DELIVERED.value

    def is_in_rto(self) -> bool:
        return self.status in ACTIVE_RTO_SHIPMENT_STATUSES

    def mark_rto_status(self, status: str, reason: str | None = None) -> None:
        """Write an RTO status onto the shipment. Non-RTO statuses are refused."""
        if status not in RTO_SHIPMENT_STATUSES:
            raise InvalidState(
                f"RTO engine cannot set shipment status to {status}",
                current_status=self.status,
            )

        now = datetime.now(UTC)
        self.status = status
        if status == ShipmentStatus.RTO_INITIATED.value:
            self.rto_initiated_at = now
            self.rto_reason = reason
        self.updated_at = now
