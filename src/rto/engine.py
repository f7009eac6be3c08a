"""RTOEngine — single entry point to the RTO lifecycle.

Wires every service over one ``RTODependencies`` bundle. Callers must be inside
an active ``rto`` domain context.

Usage:
    rto.init()
    with rto.domain_context():
        engine = RTOEngine(build_dependencies())
        result = engine.trigger_rto(shipment_id, "ndr_unresolved", ndr_event_id=ndr_id, trigger_type="auto")
"""

from rto.analytics.aggregator import RTOAnalyticsAggregator
from rto.dependencies import RTODependencies, build_dependencies
from rto.rto_event.quality_check import QualityCheckService
from rto.rto_event.restock import RestockExecutor, RestockResult
from rto.rto_event.reverse_shipment import PickupScheduleResult, ReverseShipmentService, ReverseTracking
from rto.rto_event.rto_event import RTOEvent
from rto.rto_event.transitions import RTOStateMachine
from rto.rto_event.trigger import RTOTriggerCoordinator, TriggerResult


class RTOEngine:
    def __init__(self, deps: RTODependencies | None = None) -> None:
        self.deps = deps or build_dependencies()
        self.coordinator = RTOTriggerCoordinator(self.deps)
        self.restocker = RestockExecutor(self.deps)
        self.reverse_shipments = ReverseShipmentService(self.deps)
        self.state_machine = RTOStateMachine(self.deps, restock=self.restocker, reverse_shipments=self.reverse_shipments)
        self.quality_check = QualityCheckService(self.deps)
        self.analytics = RTOAnalyticsAggregator(self.deps.courier_registry)

    def trigger_rto(
        self,
        shipment_id: str,
        reason: str,
        ndr_event_id: str | None = None,
        trigger_type: str = "manual",
        triggered_by: str | None = None,
    ) -> TriggerResult:
        return self.coordinator.trigger_rto(
            shipment_id,
            reason,
            ndr_event_id=ndr_event_id,
            trigger_type=trigger_type,
            triggered_by=triggered_by,
        )

    def update_rto_status(self, rto_event_id: str, new_status, context: dict | None = None) -> RTOEvent:
        return self.state_machine.update_rto_status(rto_event_id, new_status, context)

    def record_qc_result(
        self,
        rto_event_id: str,
        passed: bool,
        remarks: str | None = None,
        *,
        inspected_by: str,
        images: list[str] | None = None,
    ) -> RTOEvent:
        return self.quality_check.record_qc_result(
            rto_event_id,
            passed,
            remarks,
            inspected_by=inspected_by,
            images=images,
        )

    def perform_restock(self, rto_event_id: str, performed_by: str | None = None) -> RestockResult:
        return self.restocker.perform_restock(rto_event_id, performed_by=performed_by)

    def track_reverse_shipment(self, reverse_awb: str) -> ReverseTracking:
        return self.reverse_shipments.track_reverse_shipment(reverse_awb)

    def cancel_reverse_shipment(self, rto_event_id: str, reason: str, cancelled_by: str | None = None) -> RTOEvent:
        return self.reverse_shipments.cancel_reverse_shipment(rto_event_id, reason, cancelled_by=cancelled_by)

    def schedule_reverse_pickup(self, rto_event_id: str, pickup_date: str, slot: str) -> PickupScheduleResult:
        return self.reverse_shipments.schedule_reverse_pickup(rto_event_id, pickup_date, slot)

    def get_analytics(self, company_id: str, filters: dict | None = None) -> dict:
        return self.analytics.get_analytics(company_id, filters)

    def get_rto_stats(self, company_id: str, start=None, end=None) -> dict:
        return self.analytics.get_rto_stats(company_id, start, end)
