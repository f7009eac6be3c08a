"""Tests for the notification dispatchers, templates and audit loggers."""

import pytest
from rto.audit.logger import InMemoryAuditLogger, StructlogAuditLogger
from rto.notification.dispatcher import LoggingNotificationDispatcher, RecordingNotificationDispatcher
from rto.notification.templates import CustomerRTOTemplate, QCCompletedTemplate, reason_text
from rto.rto_event.rto_event import RTOEvent
from rto.shipment.shipment import Shipment


def _rto():
    return RTOEvent.trigger(
        rto_event_id="rto-n-1",
        shipment_id="shp-1",
        order_id="ord-1",
        company_id="co-1",
        warehouse_id="wh-1",
        reason="refused_delivery",
        trigger_type="manual",
        rto_charges=50.0,
        charge_reference="wtx_1",
        reverse_awb="RTO-AWB1-000001",
    )


def _shipment(phone="+919800000001"):
    return Shipment(awb="AWB1", order_id="ord-1", company_id="co-1", customer_name="Ravi", customer_phone=phone)


class TestTemplates:
    def test_reason_text(self):
        assert reason_text("refused_delivery") == "Delivery refused by customer"
        assert reason_text("nonsense") == "Unable to complete delivery"

    def test_customer_message_mentions_reverse_awb(self):
        message = CustomerRTOTemplate.render({"customer_name": "Ravi", "order_id": "ord-1", "reverse_awb": "RTO-1"})
        assert "Ravi" in message["body"]
        assert "RTO-1" in message["body"]

    def test_qc_message(self):
        message = QCCompletedTemplate.render({"passed": False, "reverse_awb": "RTO-1", "inspected_by": "qc-1"})
        assert message["subject"] == "QC failed for RTO RTO-1"


class TestRecordingNotificationDispatcher:
    def test_initiated_notifies_warehouse_and_customer(self):
        dispatcher = RecordingNotificationDispatcher()
        dispatcher.notify_rto_initiated(_rto(), _shipment())
        record = dispatcher.sent[0]
        assert record["kind"] == "rto_initiated"
        assert [message["audience"] for message in record["messages"]] == ["warehouse", "customer"]

    def test_no_customer_message_without_phone(self):
        dispatcher = RecordingNotificationDispatcher()
        dispatcher.notify_rto_initiated(_rto(), _shipment(phone=None))
        assert [message["audience"] for message in dispatcher.sent[0]["messages"]] == ["warehouse"]

    def test_configured_failure_raises(self):
        dispatcher = RecordingNotificationDispatcher()
        dispatcher.configure(should_succeed=False)
        with pytest.raises(RuntimeError):
            dispatcher.notify_rto_delivered_to_warehouse(_rto())
        assert dispatcher.kinds() == []


class TestLoggingNotificationDispatcher:
    def test_emits_without_error(self):
        dispatcher = LoggingNotificationDispatcher()
        rto_event = _rto()
        dispatcher.notify_rto_initiated(rto_event, _shipment())
        dispatcher.notify_rto_delivered_to_warehouse(rto_event)


class TestAuditLoggers:
    def test_in_memory_records_entry(self):
        audit = InMemoryAuditLogger()
        audit.record("user-1", "co-1", "create", "rto_event", "rto-1", {"reason": "other"})
        entry = audit.entries[0]
        assert entry["actor"] == "user-1"
        assert entry["details"] == {"reason": "other"}
        assert entry["recorded_at"] is not None

    def test_structlog_logger_accepts_entry(self):
        StructlogAuditLogger().record("system", "co-1", "update", "rto_event", "rto-1")
