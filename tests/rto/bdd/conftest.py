"""Shared BDD fixtures and step definitions for the RTO lifecycle."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from rto.rto_event.rto_event import RTOEvent
from rto.shipment.shipment import Shipment


@pytest.fixture()
def ctx():
    """Scenario state: shipment, ndr, trigger result, rto id and captured error."""
    return {"shipment": None, "ndr": None, "result": None, "rto_event_id": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a shipment in NDR with wallet balance {balance:d}"))
def shipment_in_ndr(ctx, make_shipment, wallet, balance):
    ctx["shipment"] = make_shipment(status="ndr")
    wallet.set_balance(ctx["shipment"].company_id, balance)


@given(parsers.cfparse("a delivered shipment with wallet balance {balance:d}"))
def delivered_shipment(ctx, make_shipment, wallet, balance):
    ctx["shipment"] = make_shipment(status="delivered")
    wallet.set_balance(ctx["shipment"].company_id, balance)


@given(parsers.cfparse('the courier is failing with "{reason}"'))
def failing_courier(courier, reason):
    courier.configure(should_succeed=False, failure_reason=reason)


@given(
    parsers.cfparse('a triggered RTO returning {quantity:d} units of "{sku}" to a warehouse holding {stock:d}')
)
def triggered_rto_with_stock(ctx, triggered_rto, inventory, quantity, sku, stock):
    inventory.add_record(sku, "wh-001", on_hand=stock)
    rto_event, shipment = triggered_rto(items=[{"sku": sku, "quantity": quantity}], warehouse_id="wh-001")
    ctx["shipment"] = shipment
    ctx["rto_event_id"] = str(rto_event.id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the wallet balance is {balance:d}"))
def wallet_balance_is(ctx, wallet, balance):
    assert wallet.get_balance(ctx["shipment"].company_id) == balance


@then(parsers.cfparse('the shipment status is "{status}"'))
def shipment_status_is(ctx, status):
    shipment = current_domain.repository_for(Shipment).get(str(ctx["shipment"].id))
    assert shipment.status == status


@then(parsers.cfparse('the RTO status is "{status}"'))
def rto_status_is(ctx, status):
    rto_event = current_domain.repository_for(RTOEvent).get(ctx["rto_event_id"])
    assert rto_event.return_status == status


@then(parsers.cfparse('the operation fails with code "{code}"'))
def operation_fails(ctx, code):
    assert ctx["error"] is not None
    assert ctx["error"].code == code
