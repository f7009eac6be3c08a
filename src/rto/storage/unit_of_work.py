"""Unit of work spanning the RTO aggregates and the external collaborators.

Repository writes are batched in a Protean ``UnitOfWork`` and become visible
only on commit. Calls to external systems (wallet deduction, courier booking,
stock increments) cannot join that transaction, so each successful call
registers a compensating action. If anything fails before the commit finishes,
the Protean unit of work is rolled back and the compensations run in reverse
order.

Usage:
    with rto_unit_of_work("trigger_rto") as work:
        result = wallet.handle_rto_charge(...)
        work.on_rollback("reverse wallet charge", lambda: wallet.reverse_rto_charge(...))
        work.acquire_claim(ClaimKind.SHIPMENT, key, rto_event_id)
        repo.add(event)
"""

from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass, field

import structlog
from protean import UnitOfWork
from protean.exceptions import ExpectedVersionError, ValidationError

from rto.errors import ConcurrentUpdateError, DuplicateClaimError
from rto.storage.claims import ClaimKind, ClaimRegistry, is_claim_conflict

logger = structlog.get_logger(__name__)


@dataclass
class Compensation:
    description: str
    action: Callable[[], object]


@dataclass
class RTOUnitOfWork:
    name: str
    claims: ClaimRegistry = field(default_factory=ClaimRegistry)
    compensations: list[Compensation] = field(default_factory=list)
    acquired_claims: list[tuple[ClaimKind, str, str]] = field(default_factory=list)
    rolled_back: bool = False

    def on_rollback(self, description: str, action: Callable[[], object]) -> None:
        self.compensations.append(Compensation(description, action))

    def acquire_claim(self, kind: ClaimKind, claim_key: str, rto_event_id: str) -> None:
        self.claims.acquire(kind, claim_key, rto_event_id)
        self.acquired_claims.append((kind, claim_key, rto_event_id))

    def rollback(self) -> None:
        if self.rolled_back:
            return
        self.rolled_back = True
        for compensation in reversed(self.compensations):
            try:
                compensation.action()
                logger.info(
                    "Compensation applied",
                    unit_of_work=self.name,
                    compensation=compensation.description,
                )
            except Exception as exc:
                # The external side effect stays applied; flag it for manual reconciliation.
                logger.error(
                    "Compensation failed, manual reconciliation required",
                    unit_of_work=self.name,
                    compensation=compensation.description,
                    error=str(exc),
                )

    def conflicting_claim(self) -> tuple[ClaimKind, str] | None:
        """Find which acquired claim lost the race to a concurrent writer.

        NDR claims are checked first, matching the order of the trigger
        preconditions.
        """
        ordered = sorted(self.acquired_claims, key=lambda claim: claim[0] != ClaimKind.NDR)
        for kind, claim_key, rto_event_id in ordered:
            holder = self.claims.find(claim_key)
            if holder is not None and str(holder.rto_event_id) != rto_event_id:
                return kind, claim_key
        return None

    def _claim_conflict(self, exc: Exception) -> DuplicateClaimError:
        conflict = self.conflicting_claim()
        if conflict is None:
            # No other holder visible: the version conflict was on the shipment itself
            claim_key = next((key for kind, key, _ in self.acquired_claims if kind == ClaimKind.SHIPMENT), "unknown")
            conflict = (ClaimKind.SHIPMENT, claim_key)
        kind, claim_key = conflict
        logger.warning("Claim lost to a concurrent writer", unit_of_work=self.name, claim_key=claim_key, error=str(exc))
        return DuplicateClaimError(kind.value, claim_key)


@contextmanager
def rto_unit_of_work(name: str):
    """Run a block as one all-or-nothing unit across storage and collaborators.

    A commit that loses an optimistic version check is reported as the claim
    the concurrent writer took (``DuplicateClaimError``) when this unit
    acquired claims, and as ``ConcurrentUpdateError`` otherwise.
    """
    work = RTOUnitOfWork(name=name)
    try:
        with UnitOfWork():
            yield work
    except ValidationError as exc:
        work.rollback()
        if is_claim_conflict(exc):
            raise work._claim_conflict(exc) from exc
        raise
    except ExpectedVersionError as exc:
        work.rollback()
        if work.acquired_claims:
            raise work._claim_conflict(exc) from exc
        logger.warning("Concurrent update detected", unit_of_work=name, error=str(exc))
        raise ConcurrentUpdateError(name, str(exc)) from exc
    except BaseException:
        work.rollback()
        raise
