"""RTO domain errors.

Raised by the application services when a business rule is violated. Every
error carries a stable ``code`` so calling layers can translate it into a
user-facing response (``INSUFFICIENT_BALANCE`` becomes a "top up wallet" prompt,
for example) without parsing messages.
"""


class RTOError(Exception):
    """Base class for all RTO lifecycle failures."""

    code = "RTO_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class ShipmentNotFound(RTOError):
    code = "SHIPMENT_NOT_FOUND"

    def __init__(self, shipment_id: str | None = None, message: str = "Shipment not found"):
        super().__init__(message)
        self.shipment_id = shipment_id


class RTONotFound(RTOError):
    code = "RTO_NOT_FOUND"

    def __init__(self, lookup: str | None = None, message: str = "RTO event not found"):
        super().__init__(message)
        self.lookup = lookup


class OrderNotFound(RTOError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str | None = None):
        super().__init__("Order not found")
        self.order_id = order_id


class InventoryNotFound(RTOError):
    code = "INVENTORY_NOT_FOUND"

    def __init__(self, skus: list[str], warehouse_id: str):
        super().__init__(f"No inventory in warehouse {warehouse_id} for SKU(s): {', '.join(skus)}")
        self.skus = skus
        self.warehouse_id = warehouse_id


# ---------------------------------------------------------------------------
# State conflicts
# ---------------------------------------------------------------------------
class AlreadyDelivered(RTOError):
    code = "ALREADY_DELIVERED"

    def __init__(self, message: str = "Cannot RTO delivered shipment"):
        super().__init__(message)


class AlreadyInRTO(RTOError):
    code = "ALREADY_IN_RTO"

    def __init__(self, message: str = "Shipment already in RTO process"):
        super().__init__(message)


class InvalidState(RTOError):
    code = "INVALID_RTO_STATUS"

    def __init__(self, message: str, current_status: str | None = None):
        super().__init__(message)
        self.current_status = current_status


class InvalidRTOTransition(InvalidState):
    """A return_status change that the lifecycle graph does not allow."""

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Cannot transition RTO from {current_status} to {target_status}",
            current_status=current_status,
        )
        self.target_status = target_status


class ConcurrentUpdateError(InvalidState):
    """A commit lost its optimistic version check to a concurrent writer."""

    def __init__(self, unit_of_work: str, detail: str | None = None):
        super().__init__(f"RTO was modified concurrently during {unit_of_work}, retry the operation")
        self.unit_of_work = unit_of_work
        self.detail = detail


class QCNotPassed(RTOError):
    code = "QC_NOT_PASSED"

    def __init__(self, message: str = "Cannot restock an RTO that did not pass QC"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------
class InsufficientBalance(RTOError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, required: float, available: float):
        super().__init__(f"Insufficient wallet balance. Required: ₹{required:.2f}, Current: ₹{available:.2f}")
        self.required = required
        self.available = available


class RateLimited(RTOError):
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int | float | None):
        super().__init__(f"Rate limit exceeded. Retry after {retry_after} seconds.")
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------
class DuplicateTrigger(RTOError):
    code = "DUPLICATE_TRIGGER"

    def __init__(self, ndr_event_id: str | None = None, message: str = "RTO already triggered for this NDR"):
        super().__init__(message)
        self.ndr_event_id = ndr_event_id


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------
class WalletChargeFailed(RTOError):
    code = "WALLET_CHARGE_FAILED"

    def __init__(self, reason: str | None):
        super().__init__(f"Failed to deduct RTO charges: {reason or 'unknown error'}")
        self.reason = reason


class CourierCreateFailed(RTOError):
    code = "COURIER_CREATE_FAILED"

    def __init__(self, carrier: str, reason: str | None):
        super().__init__(f"Failed to create reverse shipment with {carrier}: {reason or 'unknown error'}")
        self.carrier = carrier
        self.reason = reason


class CourierCancelFailed(RTOError):
    code = "COURIER_CANCEL_FAILED"

    def __init__(self, carrier: str, reason: str | None):
        super().__init__(f"Courier {carrier} refused to cancel the reverse shipment: {reason or 'unknown error'}")
        self.carrier = carrier
        self.reason = reason


class CourierNotSupported(RTOError):
    code = "COURIER_NOT_SUPPORTED"

    def __init__(self, carrier: str | None):
        super().__init__(f"No courier adapter registered for carrier: {carrier}")
        self.carrier = carrier


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class InvalidRTORequest(RTOError):
    code = "INVALID_REQUEST"


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
class DuplicateClaimError(Exception):
    """Raised by the storage layer when a unique RTO claim already exists.

    Never leaves the engine: the trigger coordinator maps it onto
    ``AlreadyInRTO`` or ``DuplicateTrigger`` depending on ``kind``.
    """

    def __init__(self, kind: str, claim_key: str):
        super().__init__(f"Claim {claim_key} is already held")
        self.kind = kind
        self.claim_key = claim_key
