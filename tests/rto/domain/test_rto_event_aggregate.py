"""Tests for RTOEvent creation, queries and metadata."""

from datetime import timedelta

from rto.rto_event.events import RTOTriggered
from rto.rto_event.rto_event import RTOEvent, ReturnStatus


def _trigger(**overrides):
    fields = {
        "rto_event_id": "rto-001",
        "shipment_id": "shp-001",
        "order_id": "ord-001",
        "company_id": "co-001",
        "warehouse_id": "wh-001",
        "reason": "ndr_unresolved",
        "trigger_type": "auto",
        "rto_charges": 50.0,
        "charge_reference": "wtx_abc",
        "reverse_awb": "RTO-AWB1-123456",
        "carrier": "delhivery",
        "ndr_event_id": "ndr-001",
    }
    fields.update(overrides)
    return RTOEvent.trigger(**fields)


class TestTrigger:
    def test_starts_initiated(self):
        rto_event = _trigger()
        assert rto_event.return_status == ReturnStatus.INITIATED.value
        assert rto_event.current_status() == ReturnStatus.INITIATED

    def test_uses_given_id(self):
        assert str(_trigger().id) == "rto-001"

    def test_charges_marked_deducted(self):
        rto_event = _trigger()
        assert rto_event.charges_deducted is True
        assert rto_event.charges_deducted_at is not None
        assert rto_event.rto_charges == 50.0
        assert rto_event.charge_reference == "wtx_abc"

    def test_expected_return_date_defaults_to_seven_days(self):
        rto_event = _trigger()
        assert rto_event.expected_return_date - rto_event.triggered_at == timedelta(days=7)

    def test_expected_return_days_configurable(self):
        rto_event = _trigger(expected_return_days=3)
        assert rto_event.expected_return_date - rto_event.triggered_at == timedelta(days=3)

    def test_triggered_by_defaults_to_system(self):
        assert _trigger().triggered_by == "system"

    def test_triggered_by_user(self):
        assert _trigger(triggered_by="user-42").triggered_by == "user-42"

    def test_initial_history_entry(self):
        rto_event = _trigger()
        assert len(rto_event.status_history) == 1
        entry = rto_event.status_history[0]
        assert entry.from_status is None
        assert entry.to_status == "initiated"

    def test_raises_triggered_event(self):
        rto_event = _trigger()
        assert len(rto_event._events) == 1
        event = rto_event._events[0]
        assert isinstance(event, RTOTriggered)
        assert event.reverse_awb == "RTO-AWB1-123456"
        assert event.rto_charges == 50.0
        assert event.ndr_event_id == "ndr-001"


class TestQueries:
    def test_new_rto_is_active(self):
        rto_event = _trigger()
        assert rto_event.is_active() is True
        assert rto_event.is_terminal() is False

    def test_new_rto_is_cancellable(self):
        assert _trigger().is_cancellable() is True


class TestMetadata:
    def test_courier_metadata_stored(self):
        rto_event = _trigger(courier_metadata={"booking_id": "bk-1"})
        assert rto_event.get_metadata() == {"courier": {"booking_id": "bk-1"}}

    def test_empty_metadata(self):
        assert _trigger().get_metadata() == {}

    def test_merge_metadata_keeps_existing_keys(self):
        rto_event = _trigger(courier_metadata={"booking_id": "bk-1"})
        rto_event.merge_metadata(pickup={"slot": "10-13"})
        data = rto_event.get_metadata()
        assert data["courier"] == {"booking_id": "bk-1"}
        assert data["pickup"] == {"slot": "10-13"}
