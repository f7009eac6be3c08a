"""Wallet charge gateway port.

The seller's wallet is owned by the billing system. The RTO engine only asks
for the balance, deducts RTO charges with a single conditional update
("deduct if balance >= amount") and reverses a deduction when the rest of the
trigger fails.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WalletChargeResult:
    """Result of a wallet deduction or reversal."""

    success: bool
    new_balance: float | None = None
    transaction_id: str | None = None
    error: str | None = None


class WalletChargeGateway(ABC):
    @abstractmethod
    def get_balance(self, company_id: str) -> float:
        ...

    @abstractmethod
    def has_minimum_balance(self, company_id: str, amount: float) -> bool:
        ...

    @abstractmethod
    def handle_rto_charge(
        self,
        company_id: str,
        amount: float,
        reference: str,
        description: str | None = None,
    ) -> WalletChargeResult:
        """Atomically deduct ``amount`` if the balance covers it."""
        ...

    @abstractmethod
    def reverse_rto_charge(self, company_id: str, amount: float, reference: str) -> WalletChargeResult:
        """Credit back a deduction made by ``handle_rto_charge``."""
        ...
