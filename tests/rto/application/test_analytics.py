"""Application tests for RTO analytics over stored shipments and returns."""

import pytest
from rto.errors import InvalidRTORequest


@pytest.fixture()
def seeded(triggered_rto, make_shipment):
    """Eight shipments in the window: four Delhivery (one returned), four Blue Dart."""
    rto_event, _ = triggered_rto(carrier="delhivery")
    for _ in range(3):
        make_shipment(carrier="delhivery", status="delivered")
    for _ in range(4):
        make_shipment(carrier="Blue Dart", status="delivered", warehouse_id="wh-002")
    return rto_event


class TestGetAnalytics:
    def test_summary(self, engine, seeded, company_id):
        summary = engine.get_analytics(company_id)["summary"]

        assert summary["total_orders"] == 8
        assert summary["total_rto"] == 1
        assert summary["current_rate"] == 12.5
        assert summary["previous_rate"] == 0
        assert summary["change"] == 12.5
        assert summary["industry_average"] == 10.5
        assert summary["estimated_loss"] == 50
        assert summary["period_label"] == "Last 30 Days"

    def test_by_courier_sorted_best_first(self, engine, seeded, company_id):
        by_courier = engine.get_analytics(company_id)["by_courier"]

        assert by_courier == [
            {"courier": "Blue Dart", "rate": 0.0, "count": 0, "total": 4},
            {"courier": "Delhivery", "rate": 25.0, "count": 1, "total": 4},
        ]

    def test_by_reason_and_stats(self, engine, seeded, company_id):
        report = engine.get_analytics(company_id)

        assert report["by_reason"] == [
            {"reason": "ndr_unresolved", "label": "Customer Unavailable", "percentage": 100, "count": 1}
        ]
        assert report["stats"]["total"] == 1
        assert report["stats"]["by_status"] == {"initiated": 1}
        assert report["stats"]["restock_rate"] == 0
        assert report["stats"]["avg_qc_turnaround_hours"] is None

    def test_recommendations(self, engine, seeded, company_id):
        recommendations = engine.get_analytics(company_id)["recommendations"]

        assert [item["type"] for item in recommendations] == ["courier_switch", "verification"]
        assert recommendations[0]["message"] == "Switch orders from Delhivery to Blue Dart"
        assert recommendations[0]["impact"] == "Save ₹50/month"
        assert "IVR" in recommendations[1]["message"]

    def test_trend_ends_in_current_month(self, engine, seeded, company_id):
        trend = engine.get_analytics(company_id)["trend"]
        assert trend[-1]["rate"] == 12.5

    def test_warehouse_filter(self, engine, seeded, company_id):
        summary = engine.get_analytics(company_id, {"warehouse_id": "wh-002"})["summary"]
        assert summary["total_orders"] == 4
        assert summary["total_rto"] == 0

    def test_reason_filter(self, engine, seeded, company_id):
        summary = engine.get_analytics(company_id, {"rto_reason": "address_issue"})["summary"]
        assert summary["total_rto"] == 0

    def test_window_without_data(self, engine, seeded, company_id):
        report = engine.get_analytics(company_id, {"start_date": "2020-01-01", "end_date": "2020-01-31"})

        assert report["summary"]["total_orders"] == 0
        assert report["summary"]["current_rate"] == 0
        assert report["summary"]["estimated_loss"] == 0
        assert report["summary"]["period_label"] == "Custom Range"
        assert report["by_courier"] == []
        assert report["recommendations"] == []

    def test_invalid_dates(self, engine, company_id):
        with pytest.raises(InvalidRTORequest):
            engine.get_analytics(company_id, {"start_date": "yesterday", "end_date": "today"})

    def test_other_companies_excluded(self, engine, seeded):
        assert engine.get_analytics("co-someone-else")["summary"]["total_orders"] == 0

    def test_qc_turnaround_and_restock_rate(self, engine, seeded, advance_rto, inventory, company_id):
        inventory.add_record("SKU-TSHIRT-M", "wh-001")
        advance_rto(str(seeded.id), "in_transit", "delivered_to_warehouse")
        engine.record_qc_result(str(seeded.id), True, inspected_by="qc-1")
        engine.perform_restock(str(seeded.id))

        stats = engine.get_analytics(company_id)["stats"]

        assert stats["restock_rate"] == 100.0
        assert stats["disposition_breakdown"]["restock"] == 1
        assert stats["avg_qc_turnaround_hours"] == 0.0


class TestGetRTOStats:
    def test_totals(self, engine, seeded, company_id):
        stats = engine.get_rto_stats(company_id)

        assert stats == {
            "total": 1,
            "by_reason": {"ndr_unresolved": 1},
            "avg_charges": 50.0,
            "return_rate": 12.5,
        }

    def test_empty_company(self, engine):
        assert engine.get_rto_stats("co-empty")["total"] == 0
