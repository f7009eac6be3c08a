"""Application tests for tracking, cancelling and scheduling the return leg."""

import contextvars
from concurrent.futures import ThreadPoolExecutor

import pytest
from protean import current_domain
from rto.domain import rto
from rto.errors import CourierCancelFailed, InvalidRTORequest, InvalidState, RTONotFound
from rto.rto_event.rto_event import RTOEvent
from rto.shipment.shipment import Shipment


def _stored(rto_event):
    return current_domain.repository_for(RTOEvent).get(str(rto_event.id))


def _elsewhere(action):
    """Run ``action`` on another thread, outside any open unit of work, and wait for it."""

    def run():
        with rto.domain_context():
            return action()

    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(contextvars.Context().run, run).result()


class TestTrackReverseShipment:
    def test_courier_history_oldest_first(self, engine, triggered_rto):
        rto_event, _ = triggered_rto()

        tracking = engine.track_reverse_shipment(rto_event.reverse_awb)

        assert tracking.source == "courier"
        assert tracking.status == "in_transit"
        assert [event["status"] for event in tracking.tracking_history] == ["manifested", "picked_up", "in_transit"]

    def test_falls_back_to_local_history(self, engine, triggered_rto, courier):
        rto_event, _ = triggered_rto()
        courier.configure(should_succeed=False)

        tracking = engine.track_reverse_shipment(rto_event.reverse_awb)

        assert tracking.source == "local"
        assert tracking.status == "initiated"
        assert tracking.tracking_history[0]["status"] == "initiated"

    def test_unknown_awb(self, engine):
        with pytest.raises(RTONotFound):
            engine.track_reverse_shipment("RTO-UNKNOWN-000000")


class TestCancelReverseShipment:
    def test_cancels_once_and_releases_shipment(self, engine, triggered_rto, courier, wallet):
        rto_event, shipment = triggered_rto()

        cancelled = engine.cancel_reverse_shipment(str(rto_event.id), "Seller request", cancelled_by="ops-2")

        assert cancelled.return_status == "cancelled"
        assert len(courier.calls_to("cancel_reverse_shipment")) == 1
        assert current_domain.repository_for(Shipment).get(str(shipment.id)).status == "rto_cancelled"
        # Charge is kept
        assert wallet.get_balance(shipment.company_id) == 950

    def test_shipment_can_be_retriggered(self, engine, triggered_rto):
        rto_event, shipment = triggered_rto()
        engine.cancel_reverse_shipment(str(rto_event.id), "Seller request")

        result = engine.trigger_rto(str(shipment.id), "other")

        assert result.success is True
        assert result.rto_event_id != str(rto_event.id)

    def test_courier_refusal_leaves_rto_untouched(self, engine, triggered_rto, courier):
        rto_event, shipment = triggered_rto()
        courier.configure(should_succeed=False, failure_reason="Already picked up")

        with pytest.raises(CourierCancelFailed) as exc:
            engine.cancel_reverse_shipment(str(rto_event.id), "Seller request")

        assert exc.value.reason == "Already picked up"
        assert len(courier.calls_to("cancel_reverse_shipment")) == 1
        assert _stored(rto_event).return_status == "initiated"
        assert current_domain.repository_for(Shipment).get(str(shipment.id)).status == "rto_initiated"

    def test_pickup_scheduled_during_cancel_reapplies_cancellation(self, engine, triggered_rto, courier, monkeypatch):
        rto_event, shipment = triggered_rto()
        cancel = courier.cancel_reverse_shipment

        def cancel_then_schedule(reverse_awb, reason):
            result = cancel(reverse_awb, reason)
            _elsewhere(lambda: engine.schedule_reverse_pickup(str(rto_event.id), "2026-11-02", "10:00-13:00"))
            return result

        monkeypatch.setattr(courier, "cancel_reverse_shipment", cancel_then_schedule)

        cancelled = engine.cancel_reverse_shipment(str(rto_event.id), "Seller request")

        assert cancelled.return_status == "cancelled"
        stored = _stored(rto_event)
        assert stored.return_status == "cancelled"
        assert stored.get_metadata()["pickup"]["slot"] == "10:00-13:00"
        assert current_domain.repository_for(Shipment).get(str(shipment.id)).status == "rto_cancelled"
        assert len(courier.calls_to("cancel_reverse_shipment")) == 1

    def test_pickup_by_courier_during_cancel_raises_invalid_state(self, engine, triggered_rto, courier, monkeypatch):
        rto_event, shipment = triggered_rto()
        cancel = courier.cancel_reverse_shipment

        def cancel_then_picked_up(reverse_awb, reason):
            result = cancel(reverse_awb, reason)
            _elsewhere(lambda: engine.update_rto_status(str(rto_event.id), "in_transit"))
            return result

        monkeypatch.setattr(courier, "cancel_reverse_shipment", cancel_then_picked_up)

        with pytest.raises(InvalidState) as exc:
            engine.cancel_reverse_shipment(str(rto_event.id), "Seller request")

        assert exc.value.code == "INVALID_RTO_STATUS"
        assert exc.value.current_status == "in_transit"
        assert _stored(rto_event).return_status == "in_transit"
        assert current_domain.repository_for(Shipment).get(str(shipment.id)).status == "rto_in_transit"
        assert len(courier.calls_to("cancel_reverse_shipment")) == 1

    def test_not_cancellable_after_pickup(self, engine, triggered_rto, advance_rto, courier):
        rto_event, _ = triggered_rto()
        advance_rto(str(rto_event.id), "in_transit")

        with pytest.raises(InvalidState, match="Cannot cancel RTO in status in_transit"):
            engine.cancel_reverse_shipment(str(rto_event.id), "Seller request")
        assert courier.calls_to("cancel_reverse_shipment") == []

    def test_unknown_rto(self, engine):
        with pytest.raises(RTONotFound):
            engine.cancel_reverse_shipment("rto-missing", "x")


class TestScheduleReversePickup:
    def test_schedules_and_records(self, engine, triggered_rto):
        rto_event, _ = triggered_rto()

        result = engine.schedule_reverse_pickup(str(rto_event.id), "2026-11-02", "10:00-13:00")

        assert result.supported is True
        assert result.success is True
        assert result.confirmation_id is not None
        pickup = _stored(rto_event).get_metadata()["pickup"]
        assert pickup["date"] == "2026-11-02"
        assert pickup["slot"] == "10:00-13:00"

    def test_unsupported_courier(self, engine, triggered_rto, courier):
        rto_event, _ = triggered_rto()
        courier.configure(supports_pickup=False)

        result = engine.schedule_reverse_pickup(str(rto_event.id), "2026-11-02", "10:00-13:00")

        assert result.supported is False
        assert result.success is False
        assert "pickup" not in _stored(rto_event).get_metadata()

    def test_courier_failure(self, engine, triggered_rto, courier):
        rto_event, _ = triggered_rto()
        courier.configure(should_succeed=False, failure_reason="No slots")

        result = engine.schedule_reverse_pickup(str(rto_event.id), "2026-11-02", "10:00-13:00")

        assert result.supported is True
        assert result.success is False
        assert result.error == "No slots"

    def test_invalid_date(self, engine, triggered_rto):
        rto_event, _ = triggered_rto()
        with pytest.raises(InvalidRTORequest):
            engine.schedule_reverse_pickup(str(rto_event.id), "next tuesday", "10:00-13:00")

    def test_only_before_pickup(self, engine, triggered_rto, advance_rto):
        rto_event, _ = triggered_rto()
        advance_rto(str(rto_event.id), "in_transit")
        with pytest.raises(InvalidState):
            engine.schedule_reverse_pickup(str(rto_event.id), "2026-11-02", "10:00-13:00")
