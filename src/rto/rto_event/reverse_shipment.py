"""Reverse shipment operations — track, cancel and schedule pickup of the return leg."""

from dataclasses import dataclass, field
from datetime import date

import structlog
from protean.utils.globals import current_domain

from rto.dependencies import RTODependencies
from rto.errors import ConcurrentUpdateError, CourierCancelFailed, InvalidRTORequest, InvalidState, RTONotFound
from rto.rto_event.rto_event import RTOEvent, ReturnStatus
from rto.shipment.shipment import Shipment, ShipmentStatus
from rto.storage.unit_of_work import RTOUnitOfWork, rto_unit_of_work
from rto.utils.logging import rto_log_context

logger = structlog.get_logger(__name__)


@dataclass
class ReverseTracking:
    reverse_awb: str
    status: str | None
    current_location: str | None = None
    tracking_history: list[dict] = field(default_factory=list)
    estimated_delivery: str | None = None
    source: str = "courier"  # "local" when the courier could not be reached


@dataclass
class PickupScheduleResult:
    supported: bool
    success: bool = False
    confirmation_id: str | None = None
    pickup_date: str | None = None
    slot: str | None = None
    error: str | None = None


def _sorted_history(events: list[dict]) -> list[dict]:
    return sorted(events, key=lambda event: event.get("occurred_at") or "")


class ReverseShipmentService:
    def __init__(self, deps: RTODependencies) -> None:
        self.deps = deps

    def track_reverse_shipment(self, reverse_awb: str) -> ReverseTracking:
        rto_event = current_domain.repository_for(RTOEvent).find_by_reverse_awb(reverse_awb)
        if rto_event is None:
            raise RTONotFound(reverse_awb)
        shipment = current_domain.repository_for(Shipment).get_shipment(rto_event.shipment_id)

        courier = self.deps.couriers.get_provider(rto_event.carrier or shipment.carrier)
        tracking = courier.track_shipment(reverse_awb)

        if not tracking.success:
            logger.warning(
                "Courier tracking unavailable, returning local status",
                reverse_awb=reverse_awb,
                error=tracking.failure_reason,
            )
            return ReverseTracking(
                reverse_awb=reverse_awb,
                status=rto_event.return_status,
                tracking_history=_sorted_history(
                    [
                        {
                            "status": entry.to_status,
                            "location": None,
                            "description": entry.note,
                            "occurred_at": entry.changed_at.isoformat(),
                        }
                        for entry in rto_event.status_history
                    ]
                ),
                estimated_delivery=(
                    rto_event.expected_return_date.isoformat() if rto_event.expected_return_date else None
                ),
                source="local",
            )

        return ReverseTracking(
            reverse_awb=reverse_awb,
            status=tracking.status,
            current_location=tracking.current_location,
            tracking_history=_sorted_history(tracking.events),
            estimated_delivery=tracking.estimated_delivery,
        )

    def cancel_reverse_shipment(self, rto_event_id: str, reason: str, cancelled_by: str | None = None) -> RTOEvent:
        """Cancel a return that the courier has not picked up yet.

        The courier is asked exactly once, as the last step before commit. If it
        refuses, the RTO stays as it was. The RTO charge is not refunded.

        If the commit then loses to a concurrent update, the booking is already
        cancelled at the courier, so the cancellation is re-applied to the fresh
        RTO while it is still cancellable. Otherwise the mismatch is logged for
        manual reconciliation and ``InvalidState`` is raised.
        """
        with rto_log_context(operation="cancel_reverse_shipment", rto_event_id=rto_event_id):
            rto_repo = current_domain.repository_for(RTOEvent)
            shipment_repo = current_domain.repository_for(Shipment)

            rto_event = rto_repo.get_rto(rto_event_id)
            if not rto_event.is_cancellable():
                raise InvalidState(
                    f"Cannot cancel RTO in status {rto_event.return_status}",
                    current_status=rto_event.return_status,
                )
            shipment = shipment_repo.get_shipment(rto_event.shipment_id)

            carrier = rto_event.carrier or shipment.carrier
            courier = self.deps.couriers.get_provider(carrier)

            try:
                with rto_unit_of_work("cancel_reverse_shipment") as work:
                    self._record_cancellation(work, rto_event, shipment, reason, cancelled_by)

                    result = courier.cancel_reverse_shipment(rto_event.reverse_awb, reason)
                    if not result.cancelled:
                        logger.warning(
                            "Courier refused reverse shipment cancellation", carrier=carrier, error=result.reason
                        )
                        raise CourierCancelFailed(carrier or "courier", result.reason)
            except ConcurrentUpdateError:
                rto_event = self._settle_cancelled_booking(rto_event_id, reason, cancelled_by)

            logger.info("Reverse shipment cancelled", reverse_awb=rto_event.reverse_awb, reason=reason)
            return rto_event

    def _record_cancellation(
        self, work: RTOUnitOfWork, rto_event: RTOEvent, shipment: Shipment, reason: str, cancelled_by: str | None
    ) -> None:
        rto_event.cancel(reason, cancelled_by=cancelled_by)
        current_domain.repository_for(RTOEvent).add(rto_event)
        shipment.mark_rto_status(ShipmentStatus.RTO_CANCELLED.value)
        current_domain.repository_for(Shipment).add(shipment)
        work.claims.release_shipment(str(shipment.id))

    def _settle_cancelled_booking(self, rto_event_id: str, reason: str, cancelled_by: str | None) -> RTOEvent:
        rto_event = current_domain.repository_for(RTOEvent).get_rto(rto_event_id)
        if rto_event.current_status() == ReturnStatus.CANCELLED:
            return rto_event

        if rto_event.is_cancellable():
            logger.info("RTO changed while cancelling, re-applying cancellation", reverse_awb=rto_event.reverse_awb)
            shipment = current_domain.repository_for(Shipment).get_shipment(rto_event.shipment_id)
            with rto_unit_of_work("cancel_reverse_shipment_retry") as work:
                self._record_cancellation(work, rto_event, shipment, reason, cancelled_by)
            return rto_event

        logger.error(
            "Courier cancelled the reverse shipment but the RTO moved on, manual reconciliation required",
            reverse_awb=rto_event.reverse_awb,
            current_status=rto_event.return_status,
        )
        raise InvalidState(
            f"RTO moved to {rto_event.return_status} while cancelling; courier booking already cancelled",
            current_status=rto_event.return_status,
        )

    def schedule_reverse_pickup(self, rto_event_id: str, pickup_date: str, slot: str) -> PickupScheduleResult:
        try:
            date.fromisoformat(pickup_date)
        except (TypeError, ValueError) as exc:
            raise InvalidRTORequest(f"Invalid pickup date: {pickup_date}") from exc

        rto_repo = current_domain.repository_for(RTOEvent)
        rto_event = rto_repo.get_rto(rto_event_id)
        if rto_event.current_status() != ReturnStatus.INITIATED:
            raise InvalidState(
                f"Cannot schedule pickup for RTO in status {rto_event.return_status}",
                current_status=rto_event.return_status,
            )

        carrier = rto_event.carrier
        scheduler = self.deps.couriers.get_provider(carrier).pickup_scheduler()
        if scheduler is None:
            logger.info("Courier does not support pickup scheduling", carrier=carrier, rto_event_id=rto_event_id)
            return PickupScheduleResult(supported=False, error="Courier does not support pickup scheduling")

        confirmation = scheduler.schedule_pickup(rto_event.reverse_awb, pickup_date, slot)
        if not confirmation.success:
            logger.warning("Pickup scheduling failed", rto_event_id=rto_event_id, error=confirmation.failure_reason)
            return PickupScheduleResult(supported=True, success=False, error=confirmation.failure_reason)

        rto_event.record_pickup_scheduled(
            pickup_date,
            slot,
            confirmation={"confirmation_id": confirmation.confirmation_id},
        )
        rto_repo.add(rto_event)

        logger.info("Reverse pickup scheduled", rto_event_id=rto_event_id, pickup_date=pickup_date, slot=slot)
        return PickupScheduleResult(
            supported=True,
            success=True,
            confirmation_id=confirmation.confirmation_id,
            pickup_date=pickup_date,
            slot=slot,
        )
