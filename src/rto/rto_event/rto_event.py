"""RTOEvent aggregate — one return-to-origin of one shipment.

The aggregate is created only by the trigger coordinator, inside the same unit
of work that deducts the RTO charge from the seller's wallet. It is never
deleted: terminal states close an append-only audit trail.

State Machine:
    INITIATED → IN_TRANSIT → DELIVERED_TO_WAREHOUSE → QC_PENDING → QC_COMPLETED
    QC_COMPLETED → {RESTOCKED, REFURBISHED, DISPOSED, CLAIMED}
    DELIVERED_TO_WAREHOUSE → QC_COMPLETED (QC recorded without a pending step)
    INITIATED → CANCELLED
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    String,
    Text,
    ValueObject,
)

from rto.domain import rto
from rto.errors import InvalidRTOTransition, InvalidState, QCNotPassed
from rto.rto_event.events import (
    ReversePickupScheduled,
    RTOCancelled,
    RTOQCRecorded,
    RTORestocked,
    RTOStatusChanged,
    RTOTriggered,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReturnStatus(Enum):
    INITIATED = "initiated"
    IN_TRANSIT = "in_transit"
    DELIVERED_TO_WAREHOUSE = "delivered_to_warehouse"
    QC_PENDING = "qc_pending"
    QC_COMPLETED = "qc_completed"
    RESTOCKED = "restocked"
    REFURBISHED = "refurbished"
    DISPOSED = "disposed"
    CLAIMED = "claimed"
    CANCELLED = "cancelled"


class RTOReason(Enum):
    NDR_UNRESOLVED = "ndr_unresolved"
    CUSTOMER_CANCELLATION = "customer_cancellation"
    ADDRESS_ISSUE = "address_issue"
    REFUSED_DELIVERY = "refused_delivery"
    QC_FAILURE = "qc_failure"
    DAMAGED_IN_TRANSIT = "damaged_in_transit"
    INCORRECT_PRODUCT = "incorrect_product"
    OTHER = "other"


class TriggerType(Enum):
    AUTO = "auto"
    MANUAL = "manual"


_VALID_TRANSITIONS = {
    ReturnStatus.INITIATED: {ReturnStatus.IN_TRANSIT, ReturnStatus.CANCELLED},
    ReturnStatus.IN_TRANSIT: {ReturnStatus.DELIVERED_TO_WAREHOUSE},
    ReturnStatus.DELIVERED_TO_WAREHOUSE: {ReturnStatus.QC_PENDING},
    ReturnStatus.QC_PENDING: {ReturnStatus.QC_COMPLETED},
    ReturnStatus.QC_COMPLETED: {
        ReturnStatus.RESTOCKED,
        ReturnStatus.REFURBISHED,
        ReturnStatus.DISPOSED,
        ReturnStatus.CLAIMED,
    },
    ReturnStatus.RESTOCKED: set(),  # terminal
    ReturnStatus.REFURBISHED: set(),  # terminal
    ReturnStatus.DISPOSED: set(),  # terminal
    ReturnStatus.CLAIMED: set(),  # terminal
    ReturnStatus.CANCELLED: set(),  # terminal
}

TERMINAL_STATUSES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)

_CANCELLABLE_STATUSES = {ReturnStatus.INITIATED}

_QC_RECORDABLE_STATUSES = {ReturnStatus.DELIVERED_TO_WAREHOUSE, ReturnStatus.QC_PENDING}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@rto.value_object(part_of="RTOEvent")
class QCResult:
    """Outcome of the warehouse inspection of a returned package."""

    passed = Boolean(default=False)
    remarks = String(max_length=1000)
    images = Text()  # JSON list of image URLs
    inspected_by = String(max_length=100)
    inspected_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@rto.entity(part_of="RTOEvent")
class StatusTransition:
    """One entry of the return_status history."""

    from_status = String(max_length=50)
    to_status = String(required=True, max_length=50)
    changed_by = String(max_length=100)
    note = String(max_length=500)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@rto.aggregate
class RTOEvent:
    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    company_id = Identifier(required=True)
    warehouse_id = Identifier()
    ndr_event_id = Identifier()
    reverse_awb = String(max_length=100)
    carrier = String(max_length=100)
    rto_reason = String(required=True, choices=RTOReason)
    trigger_type = String(required=True, choices=TriggerType)
    triggered_by = String(max_length=100)
    return_status = String(
        choices=ReturnStatus,
        default=ReturnStatus.INITIATED.value,
    )
    status_history = HasMany(StatusTransition)
    rto_charges = Float(default=0.0)
    charges_deducted = Boolean(default=False)
    charges_deducted_at = DateTime()
    charge_reference = String(max_length=255)
    qc_result = ValueObject(QCResult)
    rto_metadata = Text()  # JSON object of adapter-specific data
    expected_return_date = DateTime()
    triggered_at = DateTime()
    restocked_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def trigger(
        cls,
        *,
        rto_event_id: str,
        shipment_id: str,
        order_id: str,
        company_id: str,
        warehouse_id: str | None,
        reason: str,
        trigger_type: str,
        rto_charges: float,
        charge_reference: str,
        reverse_awb: str,
        carrier: str | None = None,
        ndr_event_id: str | None = None,
        triggered_by: str | None = None,
        expected_return_days: int = 7,
        courier_metadata: dict | None = None,
    ):
        """Create the RTO for a shipment whose charge has just been deducted."""
        now = datetime.now(UTC)
        event = cls(
            id=rto_event_id,
            shipment_id=shipment_id,
            order_id=order_id,
            company_id=company_id,
            warehouse_id=warehouse_id,
            ndr_event_id=ndr_event_id,
            reverse_awb=reverse_awb,
            carrier=carrier,
            rto_reason=reason,
            trigger_type=trigger_type,
            triggered_by=triggered_by or "system",
            return_status=ReturnStatus.INITIATED.value,
            rto_charges=rto_charges,
            charges_deducted=True,
            charges_deducted_at=now,
            charge_reference=charge_reference,
            rto_metadata=json.dumps({"courier": courier_metadata} if courier_metadata else {}),
            expected_return_date=now + timedelta(days=expected_return_days),
            triggered_at=now,
            updated_at=now,
        )
        event.add_status_history(
            StatusTransition(
                from_status=None,
                to_status=ReturnStatus.INITIATED.value,
                changed_by=event.triggered_by,
                note=f"RTO triggered ({trigger_type}): {reason}",
                changed_at=now,
            )
        )
        event.raise_(
            RTOTriggered(
                rto_event_id=str(event.id),
                shipment_id=shipment_id,
                order_id=order_id,
                company_id=company_id,
                ndr_event_id=ndr_event_id,
                reverse_awb=reverse_awb,
                rto_reason=reason,
                trigger_type=trigger_type,
                rto_charges=rto_charges,
                triggered_at=now,
            )
        )
        return event

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def current_status(self) -> ReturnStatus:
        return ReturnStatus(self.return_status)

    def is_terminal(self) -> bool:
        return self.current_status() in TERMINAL_STATUSES

    def is_active(self) -> bool:
        return not self.is_terminal()

    def is_cancellable(self) -> bool:
        return self.current_status() in _CANCELLABLE_STATUSES

    def get_metadata(self) -> dict:
        return json.loads(self.rto_metadata) if self.rto_metadata else {}

    def merge_metadata(self, **values) -> None:
        data = self.get_metadata()
        data.update(values)
        self.rto_metadata = json.dumps(data, default=str)

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def assert_can_transition(self, target_status: ReturnStatus) -> None:
        current = self.current_status()
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidRTOTransition(current.value, target_status.value)

    def _record_transition(
        self,
        target_status: ReturnStatus,
        changed_by: str | None = None,
        note: str | None = None,
    ) -> datetime:
        now = datetime.now(UTC)
        previous = self.return_status
        self.return_status = target_status.value
        self.updated_at = now
        self.add_status_history(
            StatusTransition(
                from_status=previous,
                to_status=target_status.value,
                changed_by=changed_by or "system",
                note=note or "",
                changed_at=now,
            )
        )
        self.raise_(
            RTOStatusChanged(
                rto_event_id=str(self.id),
                from_status=previous,
                to_status=target_status.value,
                changed_by=changed_by or "system",
                changed_at=now,
            )
        )
        return now

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, target_status: ReturnStatus, changed_by: str | None = None, note: str | None = None) -> None:
        """Move along the lifecycle graph, enforcing the QC guards."""
        self.assert_can_transition(target_status)

        if target_status == ReturnStatus.QC_COMPLETED and self.qc_result is None:
            raise InvalidState(
                "QC result must be recorded before completing QC",
                current_status=self.return_status,
            )
        if target_status == ReturnStatus.RESTOCKED and not (self.qc_result and self.qc_result.passed is True):
            raise QCNotPassed()

        self._record_transition(target_status, changed_by=changed_by, note=note)

    def record_qc(
        self,
        passed: bool,
        inspected_by: str,
        remarks: str | None = None,
        images: list[str] | None = None,
    ) -> None:
        """Record the warehouse inspection and complete QC."""
        if self.current_status() not in _QC_RECORDABLE_STATUSES:
            raise InvalidState(
                "RTO must be delivered to warehouse before QC",
                current_status=self.return_status,
            )

        now = datetime.now(UTC)
        self.qc_result = QCResult(
            passed=bool(passed),
            remarks=remarks or "",
            images=json.dumps(images or []),
            inspected_by=inspected_by,
            inspected_at=now,
        )
        self._record_transition(
            ReturnStatus.QC_COMPLETED,
            changed_by=inspected_by,
            note="QC passed" if passed else "QC failed",
        )
        self.raise_(
            RTOQCRecorded(
                rto_event_id=str(self.id),
                passed=bool(passed),
                remarks=remarks or "",
                inspected_by=inspected_by,
                inspected_at=now,
            )
        )

    def mark_restocked(self, lines: list[dict], performed_by: str | None = None) -> None:
        """Close the return after its units were added back to stock."""
        self.transition_to(ReturnStatus.RESTOCKED, changed_by=performed_by, note="Returned units restocked")

        units = sum(line["quantity"] for line in lines)
        self.restocked_at = self.updated_at
        self.merge_metadata(restock={"units": units, "lines": lines})
        self.raise_(
            RTORestocked(
                rto_event_id=str(self.id),
                warehouse_id=self.warehouse_id,
                units=units,
                lines=json.dumps(lines),
                restocked_at=self.restocked_at,
            )
        )

    def cancel(self, reason: str, cancelled_by: str | None = None) -> None:
        """Cancel the return (only before the courier has picked it up)."""
        if not self.is_cancellable():
            raise InvalidState(f"Cannot cancel RTO in status {self.return_status}", current_status=self.return_status)

        now = self._record_transition(ReturnStatus.CANCELLED, changed_by=cancelled_by, note=reason)
        self.merge_metadata(cancellation={"reason": reason, "cancelled_by": cancelled_by or "system"})
        self.raise_(
            RTOCancelled(
                rto_event_id=str(self.id),
                reverse_awb=self.reverse_awb,
                reason=reason,
                cancelled_at=now,
            )
        )

    def record_pickup_scheduled(self, pickup_date: str, slot: str, confirmation: dict | None = None) -> None:
        current = self.current_status()
        if current != ReturnStatus.INITIATED:
            raise InvalidState(
                f"Cannot schedule pickup for RTO in status {current.value}",
                current_status=current.value,
            )

        now = datetime.now(UTC)
        self.merge_metadata(
            pickup={
                "date": pickup_date,
                "slot": slot,
                "confirmation": confirmation or {},
                "scheduled_at": now.isoformat(),
            }
        )
        self.updated_at = now
        self.raise_(
            ReversePickupScheduled(
                rto_event_id=str(self.id),
                pickup_date=pickup_date,
                slot=slot,
                scheduled_at=now,
            )
        )
