"""RTO domain events — immutable facts about the return lifecycle."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from rto.domain import rto


@rto.event(part_of="RTOEvent")
class RTOTriggered:
    """A return-to-origin was triggered and its charge deducted."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    company_id = Identifier(required=True)
    ndr_event_id = Identifier()
    reverse_awb = String(required=True)
    rto_reason = String(required=True)
    trigger_type = String(required=True)
    rto_charges = Float(required=True)
    triggered_at = DateTime(required=True)


@rto.event(part_of="RTOEvent")
class RTOStatusChanged:
    """The return moved along the lifecycle graph."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@rto.event(part_of="RTOEvent")
class RTOQCRecorded:
    """The returned package was inspected at the warehouse."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    passed = Boolean(required=True)
    remarks = String()
    inspected_by = String(required=True)
    inspected_at = DateTime(required=True)


@rto.event(part_of="RTOEvent")
class RTORestocked:
    """Returned units were added back to warehouse stock."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    warehouse_id = Identifier()
    units = Integer(required=True)
    lines = Text(required=True)  # JSON list of {sku, quantity}
    restocked_at = DateTime(required=True)


@rto.event(part_of="RTOEvent")
class RTOCancelled:
    """The return was cancelled before the courier picked it up."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    reverse_awb = String()
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@rto.event(part_of="RTOEvent")
class ReversePickupScheduled:
    """A pickup slot was booked with the courier for the return leg."""

    __version__ = 1

    rto_event_id = Identifier(required=True)
    pickup_date = String(required=True)
    slot = String(required=True)
    scheduled_at = DateTime(required=True)
