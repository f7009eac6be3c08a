"""BDD tests for triggering an RTO."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from rto.shipment.ndr import NDREvent

scenarios("features/rto_trigger.feature")


def _auto_trigger(ctx, engine):
    return engine.trigger_rto(
        str(ctx["shipment"].id),
        "ndr_unresolved",
        ndr_event_id=str(ctx["ndr"].id),
        trigger_type="auto",
    )


@given("an open NDR for the shipment")
def open_ndr(ctx, make_ndr):
    ctx["ndr"] = make_ndr(ctx["shipment"])


@given("the RTO has been auto-triggered from the NDR")
def already_triggered(ctx, engine):
    assert _auto_trigger(ctx, engine).success


@when("the RTO is auto-triggered from the NDR")
def auto_trigger(ctx, engine):
    ctx["result"] = _auto_trigger(ctx, engine)


@when(parsers.cfparse('the RTO is triggered manually for reason "{reason}"'))
def manual_trigger(ctx, engine, reason):
    ctx["result"] = engine.trigger_rto(str(ctx["shipment"].id), reason, triggered_by="ops-bdd")


@then("the trigger succeeds")
def trigger_succeeds(ctx):
    assert ctx["result"].success is True, ctx["result"].error


@then(parsers.cfparse('the trigger fails with code "{code}"'))
def trigger_fails(ctx, code):
    assert ctx["result"].success is False
    assert ctx["result"].code == code


@then(parsers.cfparse('the NDR status is "{status}"'))
def ndr_status_is(ctx, status):
    ndr = current_domain.repository_for(NDREvent).get(str(ctx["ndr"].id))
    assert ndr.status == status
