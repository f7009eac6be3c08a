"""RTO analytics — read-only reporting over historical RTO events.

Rates are RTOs per 100 shipments created in the same window. The previous
period is the window of the same length that ends just before the current one.
All rounding is half-up.
"""

import calendar
from collections import Counter
from datetime import UTC, date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

import structlog
from protean.utils.globals import current_domain

from rto.courier.registry import CourierRegistry
from rto.errors import InvalidRTORequest
from rto.rto_event.rto_event import RTOEvent, ReturnStatus
from rto.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)

INDUSTRY_RTO_AVG = 10.5
FALLBACK_AVG_RTO_CHARGE = 80

REASON_LABELS = {
    "ndr_unresolved": "Customer Unavailable",
    "customer_cancellation": "Customer Cancelled",
    "address_issue": "Address Issue",
    "refused_delivery": "Order Refused",
    "qc_failure": "QC Failure",
    "damaged_in_transit": "Damaged in Transit",
    "incorrect_product": "Incorrect / Address",
    "other": "Other",
}

ADDRESS_REASONS = ("address_issue", "incorrect_product")

_DISPOSITIONS = {
    ReturnStatus.RESTOCKED.value: "restock",
    ReturnStatus.REFURBISHED.value: "refurb",
    ReturnStatus.DISPOSED.value: "dispose",
    ReturnStatus.CLAIMED.value: "claim",
}


def round_half_up(value: float, digits: int = 0) -> float | int:
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def _as_utc(moment: datetime | None) -> datetime | None:
    if moment is None:
        return None
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment


def _parse_boundary(raw: str, boundary: str) -> datetime:
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            clock = time.min if boundary == "start" else time.max
            return datetime.combine(day, clock, tzinfo=UTC)
        return _as_utc(datetime.fromisoformat(raw))
    except ValueError as exc:
        raise InvalidRTORequest(f"Invalid {boundary} date: {raw}") from exc


class DateRange:
    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end

    def contains(self, moment: datetime | None) -> bool:
        moment = _as_utc(moment)
        return moment is not None and self.start <= moment <= self.end

    def previous(self) -> "DateRange":
        period = max(timedelta(days=1), self.end - self.start)
        previous_end = self.start - timedelta(microseconds=1)
        return DateRange(previous_end - period, previous_end)

    def days(self) -> int:
        span = self.end - self.start + timedelta(microseconds=1)
        return max(1, -(-span // timedelta(days=1)))

    def label(self) -> str:
        return {1: "Today", 7: "Last 7 Days", 30: "Last 30 Days"}.get(self.days(), "Custom Range")

    def monthly_buckets(self) -> list[tuple["DateRange", str]]:
        multi_year = self.start.year != self.end.year
        buckets = []
        year, month = self.start.year, self.start.month
        while (year, month) <= (self.end.year, self.end.month):
            last_day = calendar.monthrange(year, month)[1]
            month_start = datetime(year, month, 1, tzinfo=UTC)
            month_end = datetime.combine(date(year, month, last_day), time.max, tzinfo=UTC)
            label = month_start.strftime("%b %Y" if multi_year else "%b")
            buckets.append((DateRange(max(month_start, self.start), min(month_end, self.end)), label))
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return buckets


def resolve_date_range(filters: dict, today: date | None = None) -> DateRange:
    if filters.get("start_date") and filters.get("end_date"):
        return DateRange(
            _parse_boundary(filters["start_date"], "start"),
            _parse_boundary(filters["end_date"], "end"),
        )

    today = today or datetime.now(UTC).date()
    end = datetime.combine(today, time.max, tzinfo=UTC)
    start = datetime.combine(today - timedelta(days=29), time.min, tzinfo=UTC)
    return DateRange(start, end)


class RTOAnalyticsAggregator:
    def __init__(self, registry: CourierRegistry | None = None) -> None:
        self.registry = registry or CourierRegistry()

    # -------------------------------------------------------------------
    # Data access
    # -------------------------------------------------------------------
    def _load(self, company_id: str) -> tuple[list[RTOEvent], list[Shipment]]:
        rto_events = current_domain.repository_for(RTOEvent).find_for_company(company_id)
        shipments = current_domain.repository_for(Shipment).find_for_company(company_id)
        return rto_events, shipments

    def _rtos_in(self, rto_events: list[RTOEvent], window: DateRange, filters: dict) -> list[RTOEvent]:
        return [
            event
            for event in rto_events
            if window.contains(event.triggered_at)
            and (not filters.get("warehouse_id") or event.warehouse_id == filters["warehouse_id"])
            and (not filters.get("rto_reason") or event.rto_reason == filters["rto_reason"])
        ]

    def _shipments_in(self, shipments: list[Shipment], window: DateRange, filters: dict) -> list[Shipment]:
        return [
            shipment
            for shipment in shipments
            if window.contains(shipment.created_at)
            and (not filters.get("warehouse_id") or shipment.warehouse_id == filters["warehouse_id"])
        ]

    @staticmethod
    def _rate(rto_count: int, shipment_count: int) -> float:
        return rto_count / shipment_count * 100 if shipment_count > 0 else 0.0

    # -------------------------------------------------------------------
    # Report sections
    # -------------------------------------------------------------------
    def _stats(self, rtos: list[RTOEvent]) -> dict:
        by_reason = Counter(event.rto_reason for event in rtos if event.rto_reason)
        by_status = Counter(event.return_status for event in rtos if event.return_status)
        total_charges = sum(event.rto_charges or 0 for event in rtos)

        disposition = {name: 0 for name in _DISPOSITIONS.values()}
        for status, name in _DISPOSITIONS.items():
            disposition[name] = by_status.get(status, 0)
        completed = sum(disposition.values())
        restock_rate = round_half_up(disposition["restock"] / completed * 100, 1) if completed else 0

        turnaround = [
            (_as_utc(event.qc_result.inspected_at) - _as_utc(event.triggered_at)).total_seconds() / 3600
            for event in rtos
            if event.qc_result is not None and event.qc_result.inspected_at and event.triggered_at
        ]

        return {
            "total": len(rtos),
            "by_reason": dict(by_reason),
            "by_status": dict(by_status),
            "total_charges": total_charges,
            "avg_charges": round_half_up(total_charges / len(rtos), 2) if rtos else 0,
            "restock_rate": restock_rate,
            "disposition_breakdown": disposition,
            "avg_qc_turnaround_hours": (
                round_half_up(sum(turnaround) / len(turnaround), 1) if turnaround else None
            ),
        }

    def _by_courier(self, rtos: list[RTOEvent], shipments: list[Shipment], all_shipments: list[Shipment]) -> list[dict]:
        carrier_of = {str(shipment.id): shipment.carrier for shipment in all_shipments}

        totals = Counter(self.registry.canonicalize(shipment.carrier) for shipment in shipments)
        returns = Counter(
            self.registry.canonicalize(carrier_of.get(str(event.shipment_id)) or event.carrier) for event in rtos
        )

        rows = []
        for carrier in set(totals) | set(returns):
            total = totals.get(carrier, 0)
            count = returns.get(carrier, 0)
            rows.append(
                {
                    "courier": self.registry.get_label(carrier),
                    "rate": round_half_up(self._rate(count, total), 1),
                    "count": count,
                    "total": total,
                }
            )
        return sorted(rows, key=lambda row: (row["rate"], row["courier"]))

    def _by_reason(self, stats: dict) -> list[dict]:
        counts = stats["by_reason"]
        total = sum(counts.values())
        rows = [
            {
                "reason": reason,
                "label": REASON_LABELS.get(reason, reason),
                "percentage": round_half_up(count / total * 100) if total else 0,
                "count": count,
            }
            for reason, count in counts.items()
        ]
        return sorted(rows, key=lambda row: (-row["percentage"], row["reason"]))

    def _recommendations(self, by_courier: list[dict], by_reason: list[dict], avg_charge: int) -> list[dict]:
        recommendations = []

        if len(by_courier) > 1:
            best, worst = by_courier[0], by_courier[-1]
            if worst["rate"] - best["rate"] > 3:
                savings = round_half_up((worst["count"] - worst["total"] * best["rate"] / 100) * avg_charge)
                recommendations.append(
                    {
                        "type": "courier_switch",
                        "message": f"Switch orders from {worst['courier']} to {best['courier']}",
                        "impact": f"Save ₹{max(0, savings):,}/month",
                    }
                )

        percentages = {row["reason"]: row["percentage"] for row in by_reason}
        if sum(percentages.get(reason, 0) for reason in ADDRESS_REASONS) > 10:
            recommendations.append(
                {
                    "type": "verification",
                    "message": "Enable address verification before dispatch",
                    "impact": "Reduce incorrect address RTOs by 40%",
                }
            )

        if percentages.get("ndr_unresolved", 0) > 30:
            recommendations.append(
                {
                    "type": "verification",
                    "message": "Enable IVR confirmation for COD orders above ₹1,000",
                    "impact": "Reduce customer unavailable by 25%",
                }
            )

        return recommendations

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def get_analytics(self, company_id: str, filters: dict | None = None) -> dict:
        filters = dict(filters or {})
        window = resolve_date_range(filters)
        previous = window.previous()

        rto_events, all_shipments = self._load(company_id)
        current_rtos = self._rtos_in(rto_events, window, filters)
        current_shipments = self._shipments_in(all_shipments, window, filters)
        previous_rtos = self._rtos_in(rto_events, previous, filters)
        previous_shipments = self._shipments_in(all_shipments, previous, filters)

        current_rate = self._rate(len(current_rtos), len(current_shipments))
        previous_rate = self._rate(len(previous_rtos), len(previous_shipments))
        change = current_rate - previous_rate if previous_rate > 0 else current_rate

        charged = [event.rto_charges for event in current_rtos if (event.rto_charges or 0) > 0]
        avg_charge = round_half_up(sum(charged) / len(charged)) if charged else FALLBACK_AVG_RTO_CHARGE

        stats = self._stats(current_rtos)
        by_courier = self._by_courier(current_rtos, current_shipments, all_shipments)
        by_reason = self._by_reason(stats)

        trend = []
        for bucket, label in window.monthly_buckets():
            month_rtos = self._rtos_in(rto_events, bucket, filters)
            month_shipments = self._shipments_in(all_shipments, bucket, filters)
            trend.append({"month": label, "rate": round_half_up(self._rate(len(month_rtos), len(month_shipments)), 1)})

        logger.debug("RTO analytics computed", company_id=company_id, total_rto=len(current_rtos))

        return {
            "summary": {
                "current_rate": round_half_up(current_rate, 1),
                "previous_rate": round_half_up(previous_rate, 1),
                "change": round_half_up(change, 1),
                "industry_average": INDUSTRY_RTO_AVG,
                "total_rto": len(current_rtos),
                "total_orders": len(current_shipments),
                "estimated_loss": len(current_rtos) * avg_charge,
                "period_label": window.label(),
            },
            "stats": stats,
            "trend": trend,
            "by_courier": by_courier,
            "by_reason": by_reason,
            "recommendations": self._recommendations(by_courier, by_reason, avg_charge),
            "period": {
                "start_date": window.start.isoformat(),
                "end_date": window.end.isoformat(),
            },
        }

    def get_rto_stats(self, company_id: str, start: datetime | None = None, end: datetime | None = None) -> dict:
        """Totals over an optional window: count, per-reason counts, average charge, return rate."""
        rto_events, shipments = self._load(company_id)
        if start is not None and end is not None:
            window = DateRange(_as_utc(start), _as_utc(end))
            rto_events = self._rtos_in(rto_events, window, {})
            shipments = self._shipments_in(shipments, window, {})

        charges = [event.rto_charges or 0 for event in rto_events]
        return {
            "total": len(rto_events),
            "by_reason": dict(Counter(event.rto_reason for event in rto_events)),
            "avg_charges": round_half_up(sum(charges) / len(charges), 2) if charges else 0,
            "return_rate": round_half_up(self._rate(len(rto_events), len(shipments)), 1),
        }
