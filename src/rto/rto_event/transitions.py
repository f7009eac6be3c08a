"""RTO state machine service — moves an RTOEvent along its lifecycle.

The aggregate guards which transitions are legal; this service applies the side
effects around them: the shipment status mirrors the return leg, arrival at the
warehouse notifies the warehouse, ``restocked`` and ``cancelled`` hand over to
their own workflows, and reaching a terminal state releases the shipment for a
future RTO.
"""

import structlog
from protean.utils.globals import current_domain

from rto.dependencies import RTODependencies
from rto.errors import InvalidRTORequest
from rto.rto_event.restock import RestockExecutor
from rto.rto_event.reverse_shipment import ReverseShipmentService
from rto.rto_event.rto_event import RTOEvent, ReturnStatus
from rto.shipment.shipment import Shipment, ShipmentStatus
from rto.storage.unit_of_work import rto_unit_of_work
from rto.utils.logging import rto_log_context

logger = structlog.get_logger(__name__)

_SHIPMENT_MIRROR = {
    ReturnStatus.IN_TRANSIT: ShipmentStatus.RTO_IN_TRANSIT,
    ReturnStatus.DELIVERED_TO_WAREHOUSE: ShipmentStatus.RTO_DELIVERED,
}


def parse_return_status(value) -> ReturnStatus:
    if isinstance(value, ReturnStatus):
        return value
    try:
        return ReturnStatus(value)
    except ValueError as exc:
        raise InvalidRTORequest(f"Unknown RTO status: {value}") from exc


class RTOStateMachine:
    def __init__(
        self,
        deps: RTODependencies,
        restock: RestockExecutor | None = None,
        reverse_shipments: ReverseShipmentService | None = None,
    ) -> None:
        self.deps = deps
        self.restock = restock or RestockExecutor(deps)
        self.reverse_shipments = reverse_shipments or ReverseShipmentService(deps)

    def update_rto_status(self, rto_event_id: str, new_status, context: dict | None = None) -> RTOEvent:
        """Apply a status change.

        ``context`` may carry ``changed_by``, ``note`` and ``reason``; any other
        keys are merged into the RTO metadata.
        """
        target = parse_return_status(new_status)
        context = dict(context or {})
        changed_by = context.pop("changed_by", None)
        note = context.pop("note", None)
        reason = context.pop("reason", None)

        with rto_log_context(operation="update_rto_status", rto_event_id=rto_event_id):
            rto_repo = current_domain.repository_for(RTOEvent)
            rto_event = rto_repo.get_rto(rto_event_id)
            previous_status = rto_event.return_status

            if target == ReturnStatus.RESTOCKED:
                rto_event.assert_can_transition(target)
                self.restock.perform_restock(rto_event_id, performed_by=changed_by)
                return rto_repo.get_rto(rto_event_id)

            if target == ReturnStatus.CANCELLED:
                rto_event.assert_can_transition(target)
                return self.reverse_shipments.cancel_reverse_shipment(
                    rto_event_id,
                    reason=reason or note or "Cancelled",
                    cancelled_by=changed_by,
                )

            shipment_repo = current_domain.repository_for(Shipment)
            shipment = None
            if target in _SHIPMENT_MIRROR:
                shipment = shipment_repo.get_shipment(rto_event.shipment_id)

            rto_event.transition_to(target, changed_by=changed_by, note=note)
            if context:
                rto_event.merge_metadata(**{f"{target.value}_context": context})

            with rto_unit_of_work("update_rto_status") as work:
                rto_repo.add(rto_event)
                if shipment is not None:
                    shipment.mark_rto_status(_SHIPMENT_MIRROR[target].value)
                    shipment_repo.add(shipment)
                if rto_event.is_terminal():
                    work.claims.release_shipment(str(rto_event.shipment_id))

            logger.info("RTO status updated", previous_status=previous_status, new_status=target.value)

            if target == ReturnStatus.DELIVERED_TO_WAREHOUSE:
                try:
                    self.deps.notifier.notify_rto_delivered_to_warehouse(rto_event)
                except Exception as exc:
                    logger.error("Failed to notify warehouse arrival (non-critical)", error=str(exc))

            return rto_event
