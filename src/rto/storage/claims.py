"""Unique RTO claims — the storage-level guard against duplicate returns.

A claim row holds a unique ``claim_key``:

    shipment:<shipment_id>   held while the shipment has an active RTO
    ndr:<ndr_event_id>       held forever once an NDR produced an RTO

Two triggers racing on the same shipment or NDR both try to insert the same
key; the second insert is rejected by the unique constraint. ``ClaimRegistry``
turns that rejection into ``DuplicateClaimError`` so workflow code never
inspects storage errors.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from rto.domain import rto
from rto.errors import DuplicateClaimError


class ClaimKind(Enum):
    SHIPMENT = "shipment"
    NDR = "ndr"


@rto.aggregate
class RTOClaim:
    claim_key = String(required=True, max_length=255, unique=True)
    kind = String(required=True, max_length=20, choices=ClaimKind)
    rto_event_id = Identifier(required=True)
    claimed_at = DateTime()


def shipment_claim_key(shipment_id: str) -> str:
    return f"{ClaimKind.SHIPMENT.value}:{shipment_id}"


def ndr_claim_key(ndr_event_id: str) -> str:
    return f"{ClaimKind.NDR.value}:{ndr_event_id}"


def is_claim_conflict(exc: ValidationError) -> bool:
    messages = getattr(exc, "messages", None) or {}
    return "claim_key" in messages


class ClaimRegistry:
    """Acquire and release unique claims through the RTOClaim repository."""

    def _repo(self):
        return current_domain.repository_for(RTOClaim)

    def find(self, claim_key: str) -> RTOClaim | None:
        matches = self._repo()._dao.query.filter(claim_key=claim_key).all().items
        return matches[0] if matches else None

    def is_held(self, claim_key: str) -> bool:
        return self.find(claim_key) is not None

    def acquire(self, kind: ClaimKind, claim_key: str, rto_event_id: str) -> RTOClaim:
        if self.is_held(claim_key):
            raise DuplicateClaimError(kind.value, claim_key)

        claim = RTOClaim(
            claim_key=claim_key,
            kind=kind.value,
            rto_event_id=rto_event_id,
            claimed_at=datetime.now(UTC),
        )
        try:
            self._repo().add(claim)
        except ValidationError as exc:
            if is_claim_conflict(exc):
                raise DuplicateClaimError(kind.value, claim_key) from exc
            raise
        return claim

    def acquire_shipment(self, shipment_id: str, rto_event_id: str) -> RTOClaim:
        return self.acquire(ClaimKind.SHIPMENT, shipment_claim_key(shipment_id), rto_event_id)

    def acquire_ndr(self, ndr_event_id: str, rto_event_id: str) -> RTOClaim:
        return self.acquire(ClaimKind.NDR, ndr_claim_key(ndr_event_id), rto_event_id)

    def release_shipment(self, shipment_id: str) -> bool:
        """Drop the active-RTO claim of a shipment. Returns False if none was held."""
        claim = self.find(shipment_claim_key(shipment_id))
        if claim is None:
            return False
        self._repo()._dao.delete(claim)
        return True
