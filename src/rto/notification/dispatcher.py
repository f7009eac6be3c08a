"""Notification dispatchers.

``LoggingNotificationDispatcher`` renders the messages and emits them as
structured log events; delivery transports subscribe to the log stream.
``RecordingNotificationDispatcher`` keeps rendered messages in memory for tests.
"""

import structlog

from rto.notification.port import NotificationDispatcher
from rto.notification.templates import (
    CustomerRTOTemplate,
    QCCompletedTemplate,
    WarehouseArrivalTemplate,
    WarehouseIncomingTemplate,
)

logger = structlog.get_logger(__name__)


def _rto_context(rto_event) -> dict:
    context = {
        "rto_event_id": str(rto_event.id),
        "order_id": rto_event.order_id,
        "warehouse_id": rto_event.warehouse_id,
        "reverse_awb": rto_event.reverse_awb,
        "rto_reason": rto_event.rto_reason,
        "expected_return_date": (
            rto_event.expected_return_date.date().isoformat() if rto_event.expected_return_date else None
        ),
    }
    if rto_event.qc_result is not None:
        context.update(
            passed=rto_event.qc_result.passed,
            inspected_by=rto_event.qc_result.inspected_by,
            remarks=rto_event.qc_result.remarks,
        )
    return context


def render_rto_initiated(rto_event, shipment) -> list[dict]:
    context = _rto_context(rto_event)
    context.update(awb=shipment.awb, customer_name=shipment.customer_name)

    messages = [{"audience": "warehouse", "recipient": rto_event.warehouse_id, **WarehouseIncomingTemplate.render(context)}]
    if shipment.customer_phone:
        messages.append({"audience": "customer", "recipient": shipment.customer_phone, **CustomerRTOTemplate.render(context)})
    return messages


class LoggingNotificationDispatcher(NotificationDispatcher):
    def _emit(self, kind: str, rto_event, messages: list[dict]) -> None:
        for message in messages:
            logger.info(
                "rto_notification",
                kind=kind,
                rto_event_id=str(rto_event.id),
                audience=message["audience"],
                recipient=message["recipient"],
                subject=message.get("subject"),
            )

    def notify_rto_initiated(self, rto_event, shipment) -> None:
        self._emit("rto_initiated", rto_event, render_rto_initiated(rto_event, shipment))

    def notify_rto_delivered_to_warehouse(self, rto_event) -> None:
        message = WarehouseArrivalTemplate.render(_rto_context(rto_event))
        self._emit("rto_delivered_to_warehouse", rto_event, [{"audience": "warehouse", "recipient": rto_event.warehouse_id, **message}])

    def notify_rto_qc_completed(self, rto_event) -> None:
        message = QCCompletedTemplate.render(_rto_context(rto_event))
        self._emit("rto_qc_completed", rto_event, [{"audience": "seller", "recipient": rto_event.company_id, **message}])


class RecordingNotificationDispatcher(NotificationDispatcher):
    """Dispatcher that records notifications in memory for test assertions."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def kinds(self) -> list[str]:
        return [record["kind"] for record in self.sent]

    def _record(self, kind: str, rto_event, messages: list[dict]) -> None:
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)
        self.sent.append({"kind": kind, "rto_event_id": str(rto_event.id), "messages": messages})

    def notify_rto_initiated(self, rto_event, shipment) -> None:
        self._record("rto_initiated", rto_event, render_rto_initiated(rto_event, shipment))

    def notify_rto_delivered_to_warehouse(self, rto_event) -> None:
        self._record("rto_delivered_to_warehouse", rto_event, [WarehouseArrivalTemplate.render(_rto_context(rto_event))])

    def notify_rto_qc_completed(self, rto_event) -> None:
        self._record("rto_qc_completed", rto_event, [QCCompletedTemplate.render(_rto_context(rto_event))])
