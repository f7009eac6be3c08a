from datetime import UTC, datetime
from uuid import uuid4

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def rto_bed():
    from rto.domain import rto

    bed = DomainFixture(rto)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(rto_bed):
    with rto_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def courier():
    from rto.courier.fake_adapter import FakeCourierAdapter

    return FakeCourierAdapter()


@pytest.fixture()
def wallet():
    from rto.wallet.fake_adapter import InMemoryWallet

    return InMemoryWallet()


@pytest.fixture()
def inventory():
    from rto.inventory.fake_adapter import InMemoryInventory

    return InMemoryInventory()


@pytest.fixture()
def notifier():
    from rto.notification.dispatcher import RecordingNotificationDispatcher

    return RecordingNotificationDispatcher()


@pytest.fixture()
def audit():
    from rto.audit.logger import InMemoryAuditLogger

    return InMemoryAuditLogger()


@pytest.fixture()
def rate_limiter():
    from rto.rate_limit.sliding_window import SlidingWindowRateLimiter

    return SlidingWindowRateLimiter(limit=10, window_seconds=60)


@pytest.fixture()
def deps(courier, wallet, inventory, notifier, audit, rate_limiter):
    from rto.config import RTOSettings
    from rto.courier import CourierAdapterFactory
    from rto.dependencies import RTODependencies
    from rto.rate_card.flat_rate import FlatRateCard

    return RTODependencies(
        wallet=wallet,
        rate_card=FlatRateCard(flat_charge=50.0),
        couriers=CourierAdapterFactory(default_adapter=courier),
        inventory=inventory,
        rate_limiter=rate_limiter,
        notifier=notifier,
        audit=audit,
        settings=RTOSettings(),
    )


@pytest.fixture()
def engine(deps):
    from rto.engine import RTOEngine

    return RTOEngine(deps)


# ---------------------------------------------------------------------------
# Persisted external entities
# ---------------------------------------------------------------------------
@pytest.fixture()
def company_id():
    return f"co-{uuid4().hex[:8]}"


@pytest.fixture()
def make_shipment(company_id):
    """Persist an order and its shipment; returns the Shipment."""
    from protean import current_domain
    from rto.shipment.order import Order, OrderLineItem
    from rto.shipment.shipment import Shipment

    def _make(status="ndr", carrier="delhivery", items=None, warehouse_id="wh-001", **overrides):
        order = Order(
            order_number=f"ORD-{uuid4().hex[:6].upper()}",
            company_id=company_id,
            status="shipped",
        )
        for item in [{"sku": "SKU-TSHIRT-M", "name": "T-shirt", "quantity": 2}] if items is None else items:
            order.add_items(OrderLineItem(**item))
        current_domain.repository_for(Order).add(order)

        fields = {
            "awb": f"AWB{uuid4().hex[:10].upper()}",
            "order_id": str(order.id),
            "company_id": company_id,
            "warehouse_id": warehouse_id,
            "carrier": carrier,
            "status": status,
            "weight": 0.5,
            "zone": "zone_b",
            "customer_name": "Asha Verma",
            "customer_phone": "+919800000001",
            "created_at": datetime.now(UTC),
        }
        fields.update(overrides)
        shipment = Shipment(**fields)
        current_domain.repository_for(Shipment).add(shipment)
        return shipment

    return _make


@pytest.fixture()
def make_ndr():
    from protean import current_domain
    from rto.shipment.ndr import NDREvent

    def _make(shipment, status="open"):
        ndr = NDREvent(
            shipment_id=str(shipment.id),
            company_id=shipment.company_id,
            reason="Customer not available",
            status=status,
            created_at=datetime.now(UTC),
        )
        current_domain.repository_for(NDREvent).add(ndr)
        return ndr

    return _make


@pytest.fixture()
def triggered_rto(engine, wallet, make_shipment):
    """Trigger an RTO on a fresh shipment; returns (rto_event, shipment)."""

    def _trigger(**shipment_fields):
        shipment = make_shipment(**shipment_fields)
        wallet.set_balance(shipment.company_id, 1000)
        result = engine.trigger_rto(str(shipment.id), "ndr_unresolved")
        assert result.success, result.error
        return result.rto_event, shipment

    return _trigger


@pytest.fixture()
def advance_rto(engine):
    """Drive an RTO forward through update_rto_status, one step per status."""

    def _advance(rto_event_id, *statuses):
        rto_event = None
        for status in statuses:
            rto_event = engine.update_rto_status(rto_event_id, status, {"changed_by": "ops"})
        return rto_event

    return _advance
