"""RTO trigger — turn a failed delivery into a paid, booked return.

Preconditions are checked in a fixed order, each failing without side effects:

    1. shipment exists                      SHIPMENT_NOT_FOUND
    2. shipment not delivered               ALREADY_DELIVERED
    3. NDR not already consumed             DUPLICATE_TRIGGER
    4. shipment not already returning       ALREADY_IN_RTO
    5. company under its trigger rate       RATE_LIMITED
    6. wallet covers the RTO charge         INSUFFICIENT_BALANCE

The trigger itself runs as one unit of work: deduct the wallet, book the
reverse shipment, acquire the unique claims, persist the RTOEvent and flip the
shipment and NDR. Any failure rolls the storage writes back and compensates the
external calls (charge reversal, booking cancellation). A concurrent trigger
that commits first wins; the loser is rolled back and reported as
DUPLICATE_TRIGGER or ALREADY_IN_RTO after the claim it lost. Order status,
audit and notifications follow the commit and never fail the trigger.

``trigger_rto`` reports failures in its result instead of raising.
"""

from dataclasses import dataclass
from functools import partial
from uuid import uuid4

import structlog
from protean.utils.globals import current_domain

from rto.courier.port import CourierAdapter, ReverseShipmentRequest
from rto.dependencies import RTODependencies
from rto.errors import (
    AlreadyDelivered,
    AlreadyInRTO,
    CourierCreateFailed,
    DuplicateClaimError,
    DuplicateTrigger,
    InsufficientBalance,
    InvalidRTORequest,
    RateLimited,
    RTOError,
    WalletChargeFailed,
)
from rto.rto_event.rto_event import RTOEvent, RTOReason, TriggerType
from rto.shipment.ndr import NDREvent
from rto.shipment.order import Order
from rto.shipment.shipment import Shipment, ShipmentStatus
from rto.storage.claims import ClaimKind, ClaimRegistry, ndr_claim_key, shipment_claim_key
from rto.storage.unit_of_work import rto_unit_of_work
from rto.utils.logging import rto_log_context

logger = structlog.get_logger(__name__)

_REASON_ALIASES = {"refused": RTOReason.REFUSED_DELIVERY.value}


@dataclass
class TriggerResult:
    success: bool
    rto_event: RTOEvent | None = None
    rto_event_id: str | None = None
    reverse_awb: str | None = None
    error: str | None = None
    code: str | None = None
    retry_after: int | float | None = None
    required: float | None = None
    available: float | None = None

    @classmethod
    def succeeded(cls, rto_event: RTOEvent) -> "TriggerResult":
        return cls(
            success=True,
            rto_event=rto_event,
            rto_event_id=str(rto_event.id),
            reverse_awb=rto_event.reverse_awb,
        )

    @classmethod
    def failed(cls, exc: RTOError) -> "TriggerResult":
        return cls(
            success=False,
            error=exc.message,
            code=exc.code,
            retry_after=getattr(exc, "retry_after", None),
            required=getattr(exc, "required", None),
            available=getattr(exc, "available", None),
        )

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "rto_event_id": self.rto_event_id,
            "reverse_awb": self.reverse_awb,
            "error": self.error,
            "code": self.code,
            "retry_after": self.retry_after,
            "required": self.required,
            "available": self.available,
        }
        return {key: value for key, value in data.items() if value is not None}


def normalize_reason(reason: str) -> str:
    reason = _REASON_ALIASES.get(reason, reason)
    if reason not in {member.value for member in RTOReason}:
        raise InvalidRTORequest(f"Unknown RTO reason: {reason}")
    return reason


def normalize_trigger_type(trigger_type: str) -> str:
    if trigger_type not in {member.value for member in TriggerType}:
        raise InvalidRTORequest(f"Unknown trigger type: {trigger_type}")
    return trigger_type


class RTOTriggerCoordinator:
    def __init__(self, deps: RTODependencies, claims: ClaimRegistry | None = None) -> None:
        self.deps = deps
        self.claims = claims or ClaimRegistry()

    def trigger_rto(
        self,
        shipment_id: str,
        reason: str,
        ndr_event_id: str | None = None,
        trigger_type: str = TriggerType.MANUAL.value,
        triggered_by: str | None = None,
    ) -> TriggerResult:
        with rto_log_context(operation="trigger_rto", shipment_id=shipment_id, ndr_event_id=ndr_event_id):
            try:
                rto_event = self._trigger(shipment_id, reason, ndr_event_id, trigger_type, triggered_by)
            except RTOError as exc:
                logger.warning("RTO trigger rejected", code=exc.code, error=exc.message)
                return TriggerResult.failed(exc)
            except Exception as exc:
                logger.error("Failed to trigger RTO", error=str(exc), exc_info=True)
                return TriggerResult(success=False, error=str(exc), code="RTO_TRIGGER_FAILED")
            return TriggerResult.succeeded(rto_event)

    # -------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------
    def _check_ndr_not_consumed(self, ndr_event_id: str, ndr: NDREvent | None) -> None:
        rto_repo = current_domain.repository_for(RTOEvent)
        if (
            self.claims.is_held(ndr_claim_key(ndr_event_id))
            or (ndr is not None and ndr.is_rto_triggered())
            or rto_repo.find_by_ndr_event(ndr_event_id) is not None
        ):
            logger.warning("Duplicate RTO trigger attempt from NDR event")
            raise DuplicateTrigger(ndr_event_id)

    def _check_not_in_rto(self, shipment: Shipment) -> None:
        if shipment.is_in_rto():
            raise AlreadyInRTO()
        rto_repo = current_domain.repository_for(RTOEvent)
        if rto_repo.find_active_for_shipment(str(shipment.id)):
            raise AlreadyInRTO()

    def _check_rate_limit(self, company_id: str) -> None:
        try:
            decision = self.deps.rate_limiter.check_limit(f"rto:{company_id}")
        except Exception as exc:
            logger.error("Rate limit check failed, allowing request", company_id=company_id, error=str(exc))
            return

        if not decision.allowed:
            logger.warning(
                "RTO rate limit exceeded",
                company_id=company_id,
                limit=self.deps.settings.rate_limit,
                retry_after=decision.retry_after,
            )
            raise RateLimited(decision.retry_after)

    def _check_balance(self, company_id: str, amount: float) -> None:
        if self.deps.wallet.has_minimum_balance(company_id, amount):
            return
        available = self.deps.wallet.get_balance(company_id)
        logger.warning(
            "Insufficient wallet balance for RTO",
            company_id=company_id,
            required_amount=amount,
            current_balance=available,
        )
        raise InsufficientBalance(required=amount, available=available)

    # -------------------------------------------------------------------
    # Compensations
    # -------------------------------------------------------------------
    def _reverse_charge(self, company_id: str, amount: float, reference: str) -> None:
        result = self.deps.wallet.reverse_rto_charge(company_id, amount, reference)
        if not result.success:
            raise RuntimeError(f"Wallet reversal failed: {result.error}")

    def _cancel_booking(self, courier: CourierAdapter, carrier: str | None, reverse_awb: str) -> None:
        result = courier.cancel_reverse_shipment(reverse_awb, reason="RTO trigger rolled back")
        if not result.cancelled:
            raise RuntimeError(f"Courier {carrier} refused cancellation: {result.reason}")

    # -------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------
    def _trigger(
        self,
        shipment_id: str,
        reason: str,
        ndr_event_id: str | None,
        trigger_type: str,
        triggered_by: str | None,
    ) -> RTOEvent:
        reason = normalize_reason(reason)
        trigger_type = normalize_trigger_type(trigger_type)

        shipment_repo = current_domain.repository_for(Shipment)
        ndr_repo = current_domain.repository_for(NDREvent)
        rto_repo = current_domain.repository_for(RTOEvent)

        shipment = shipment_repo.get_shipment(shipment_id)
        if shipment.is_delivered():
            raise AlreadyDelivered()

        ndr = None
        if ndr_event_id:
            ndr = ndr_repo.find_ndr(ndr_event_id)
            if ndr is None:
                logger.warning("NDR event not found, triggering without NDR update")
            self._check_ndr_not_consumed(ndr_event_id, ndr)

        self._check_not_in_rto(shipment)

        company_id = str(shipment.company_id)
        self._check_rate_limit(company_id)

        quote = self.deps.rate_card.calculate_rto_charges(shipment, reason)
        amount = quote.final_price
        self._check_balance(company_id, amount)

        courier = self.deps.couriers.get_provider(shipment.carrier)
        rto_event_id = str(uuid4())

        try:
            with rto_unit_of_work("trigger_rto") as work:
                charge = self.deps.wallet.handle_rto_charge(
                    company_id,
                    amount,
                    reference=rto_event_id,
                    description=f"RTO charge for AWB {shipment.awb}",
                )
                if not charge.success:
                    logger.error(
                        "Failed to deduct RTO charges, aborting RTO creation",
                        company_id=company_id,
                        rto_charges=amount,
                        error=charge.error,
                    )
                    raise WalletChargeFailed(charge.error)
                work.on_rollback("reverse wallet charge", partial(self._reverse_charge, company_id, amount, rto_event_id))

                booking = courier.create_reverse_shipment(
                    ReverseShipmentRequest(
                        shipment_id=str(shipment.id),
                        awb=shipment.awb,
                        order_id=str(shipment.order_id),
                        company_id=company_id,
                        warehouse_id=shipment.warehouse_id,
                        carrier=shipment.carrier,
                        reason=reason,
                        weight=shipment.weight,
                        customer_name=shipment.customer_name,
                        customer_phone=shipment.customer_phone,
                    )
                )
                if not booking.success:
                    raise CourierCreateFailed(shipment.carrier or "courier", booking.failure_reason)
                work.on_rollback(
                    "cancel reverse shipment",
                    partial(self._cancel_booking, courier, shipment.carrier, booking.reverse_awb),
                )

                if ndr_event_id:
                    work.acquire_claim(ClaimKind.NDR, ndr_claim_key(ndr_event_id), rto_event_id)
                work.acquire_claim(ClaimKind.SHIPMENT, shipment_claim_key(str(shipment.id)), rto_event_id)

                rto_event = RTOEvent.trigger(
                    rto_event_id=rto_event_id,
                    shipment_id=str(shipment.id),
                    order_id=str(shipment.order_id),
                    company_id=company_id,
                    warehouse_id=shipment.warehouse_id,
                    reason=reason,
                    trigger_type=trigger_type,
                    rto_charges=amount,
                    charge_reference=charge.transaction_id,
                    reverse_awb=booking.reverse_awb,
                    carrier=shipment.carrier,
                    ndr_event_id=ndr_event_id,
                    triggered_by=triggered_by,
                    expected_return_days=self.deps.settings.expected_return_days,
                    courier_metadata=booking.metadata,
                )
                rto_event.merge_metadata(charge_breakdown=quote.breakdown)
                rto_repo.add(rto_event)

                shipment.mark_rto_status(ShipmentStatus.RTO_INITIATED.value, reason=reason)
                shipment_repo.add(shipment)

                if ndr is not None:
                    ndr.mark_rto_triggered(rto_event_id, auto=trigger_type == TriggerType.AUTO.value)
                    ndr_repo.add(ndr)
        except DuplicateClaimError as exc:
            logger.warning("Duplicate RTO attempt detected", claim_key=exc.claim_key)
            if exc.kind == ClaimKind.NDR.value:
                raise DuplicateTrigger(ndr_event_id) from exc
            raise AlreadyInRTO("RTO already triggered for this shipment") from exc

        self._after_commit(rto_event, shipment, triggered_by)

        logger.info(
            "RTO triggered successfully",
            rto_event_id=rto_event_id,
            reason=reason,
            trigger_type=trigger_type,
            reverse_awb=rto_event.reverse_awb,
            charges_deducted=amount,
            new_wallet_balance=charge.new_balance,
        )
        return rto_event

    def _after_commit(self, rto_event: RTOEvent, shipment: Shipment, triggered_by: str | None) -> None:
        try:
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get_order(rto_event.order_id)
            previous_status = order.mark_rto_initiated()
            order_repo.add(order)
            logger.info(
                "Order status updated",
                order_id=rto_event.order_id,
                previous_status=previous_status,
                new_status=order.status,
            )
        except Exception as exc:
            logger.error("Failed to update order status (non-critical)", order_id=rto_event.order_id, error=str(exc))

        try:
            self.deps.audit.record(
                actor=triggered_by or "system",
                company_id=str(rto_event.company_id),
                action="create",
                resource="rto_event",
                resource_id=str(rto_event.id),
                details={
                    "action": "trigger_rto",
                    "shipment_id": str(shipment.id),
                    "reason": rto_event.rto_reason,
                    "trigger_type": rto_event.trigger_type,
                    "rto_charges": rto_event.rto_charges,
                    "wallet_deducted": True,
                },
            )
        except Exception as exc:
            logger.error("Failed to write audit log (non-critical)", rto_event_id=str(rto_event.id), error=str(exc))

        try:
            self.deps.notifier.notify_rto_initiated(rto_event, shipment)
        except Exception as exc:
            logger.error("Failed to send RTO notifications (non-critical)", rto_event_id=str(rto_event.id), error=str(exc))
