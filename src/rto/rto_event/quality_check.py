"""Quality check — record the warehouse inspection of a returned package."""

import structlog
from protean.utils.globals import current_domain

from rto.dependencies import RTODependencies
from rto.errors import InvalidRTORequest
from rto.rto_event.rto_event import RTOEvent
from rto.utils.logging import rto_log_context

logger = structlog.get_logger(__name__)


class QualityCheckService:
    def __init__(self, deps: RTODependencies) -> None:
        self.deps = deps

    def record_qc_result(
        self,
        rto_event_id: str,
        passed: bool,
        remarks: str | None = None,
        *,
        inspected_by: str,
        images: list[str] | None = None,
    ) -> RTOEvent:
        if not inspected_by:
            raise InvalidRTORequest("inspected_by is required")

        with rto_log_context(operation="record_qc_result", rto_event_id=rto_event_id):
            rto_repo = current_domain.repository_for(RTOEvent)
            rto_event = rto_repo.get_rto(rto_event_id)
            rto_event.record_qc(passed, inspected_by=inspected_by, remarks=remarks, images=images)
            rto_repo.add(rto_event)
            logger.info("QC result recorded", passed=bool(passed), inspected_by=inspected_by)

            try:
                self.deps.notifier.notify_rto_qc_completed(rto_event)
            except Exception as exc:
                logger.error("Failed to send QC notification (non-critical)", error=str(exc))

            return rto_event
