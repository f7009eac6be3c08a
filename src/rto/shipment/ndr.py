"""NDREvent aggregate — a non-delivery report raised by the courier.

NDR ingestion and resolution live outside this engine. The RTO engine reads
an NDR to decide whether it has already produced a return and marks it
consumed once the return is triggered.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String

from rto.domain import rto


class NDRStatus(Enum):
    OPEN = "open"
    IN_RESOLUTION = "in_resolution"
    RESOLVED = "resolved"
    RTO_TRIGGERED = "rto_triggered"


def ndr_idempotency_key(ndr_event_id: str) -> str:
    return f"ndr-{ndr_event_id}-rto"


@rto.aggregate
class NDREvent:
    shipment_id = Identifier(required=True)
    company_id = Identifier()
    reason = String(max_length=200)
    status = String(max_length=50, default=NDRStatus.OPEN.value)
    idempotency_key = String(max_length=255)
    auto_rto_triggered = Boolean(default=False)
    rto_event_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    def is_rto_triggered(self) -> bool:
        return self.status == NDRStatus.RTO_TRIGGERED.value

    def mark_rto_triggered(self, rto_event_id: str, auto: bool) -> None:
        self.status = NDRStatus.RTO_TRIGGERED.value
        self.idempotency_key = ndr_idempotency_key(str(self.id))
        self.rto_event_id = rto_event_id
        self.auto_rto_triggered = auto
        self.updated_at = datetime.now(UTC)
