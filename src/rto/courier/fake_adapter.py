"""Fake courier adapter — deterministic courier for testing and development.

Generates reverse AWBs in the ``RTO-<awb>-<6 digits>`` format, canned tracking
histories and pickup confirmations. Success/failure and the pickup capability
are configurable at runtime, and every call is recorded in ``calls``.
"""

import time
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from rto.courier.port import (
    CancellationResult,
    CourierAdapter,
    CourierTracking,
    PickupConfirmation,
    PickupScheduler,
    ReverseShipmentRequest,
    ReverseShipmentResult,
)


class FakeCourierAdapter(CourierAdapter, PickupScheduler):
    """Fake courier that always succeeds by default."""

    def __init__(self, name: str = "fake", supports_pickup: bool = True) -> None:
        self.name = name
        self.supports_pickup = supports_pickup
        self.should_succeed: bool = True
        self.failure_reason: str = "Courier unavailable"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Courier unavailable",
        supports_pickup: bool | None = None,
    ) -> None:
        """Configure the fake courier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        if supports_pickup is not None:
            self.supports_pickup = supports_pickup

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def create_reverse_shipment(self, request: ReverseShipmentRequest) -> ReverseShipmentResult:
        self.calls.append({"method": "create_reverse_shipment", "awb": request.awb, "shipment_id": request.shipment_id})

        if not self.should_succeed:
            return ReverseShipmentResult(success=False, failure_reason=self.failure_reason)

        suffix = str(time.time_ns() // 1_000_000)[-6:]
        reverse_awb = f"RTO-{request.awb}-{suffix}"
        return ReverseShipmentResult(
            success=True,
            reverse_awb=reverse_awb,
            label_url=f"https://fake-courier.example.com/labels/{reverse_awb}.pdf",
            estimated_pickup=(datetime.now(UTC) + timedelta(days=1)).isoformat(),
            metadata={"provider": self.name, "booking_id": f"bk-{uuid4().hex[:8]}"},
        )

    def track_shipment(self, reverse_awb: str) -> CourierTracking:
        self.calls.append({"method": "track_shipment", "reverse_awb": reverse_awb})

        if not self.should_succeed:
            return CourierTracking(success=False, status="unknown", failure_reason=self.failure_reason)

        now = datetime.now(UTC)
        # Newest first, the way most courier tracking APIs report it
        return CourierTracking(
            success=True,
            status="in_transit",
            current_location="Hub, Bhiwandi",
            events=[
                {
                    "status": "in_transit",
                    "location": "Hub, Bhiwandi",
                    "description": "Return shipment in transit to origin",
                    "occurred_at": now.isoformat(),
                },
                {
                    "status": "picked_up",
                    "location": "Customer address",
                    "description": "Return shipment picked up",
                    "occurred_at": (now - timedelta(hours=6)).isoformat(),
                },
                {
                    "status": "manifested",
                    "location": None,
                    "description": "Reverse shipment manifested",
                    "occurred_at": (now - timedelta(hours=12)).isoformat(),
                },
            ],
            estimated_delivery=(now + timedelta(days=3)).isoformat(),
        )

    def cancel_reverse_shipment(self, reverse_awb: str, reason: str) -> CancellationResult:
        self.calls.append({"method": "cancel_reverse_shipment", "reverse_awb": reverse_awb, "reason": reason})

        if not self.should_succeed:
            return CancellationResult(cancelled=False, reason=self.failure_reason)
        return CancellationResult(cancelled=True, reason="Reverse shipment cancelled successfully")

    def pickup_scheduler(self) -> PickupScheduler | None:
        return self if self.supports_pickup else None

    def schedule_pickup(self, reverse_awb: str, pickup_date: str, slot: str) -> PickupConfirmation:
        self.calls.append({"method": "schedule_pickup", "reverse_awb": reverse_awb, "pickup_date": pickup_date, "slot": slot})

        if not self.should_succeed:
            return PickupConfirmation(success=False, failure_reason=self.failure_reason)
        return PickupConfirmation(
            success=True,
            confirmation_id=f"pk-{uuid4().hex[:10]}",
            pickup_date=pickup_date,
            slot=slot,
        )
