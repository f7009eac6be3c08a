"""In-memory wallet for development and testing.

Balances live in a dict guarded by a lock, so the conditional deduction is
atomic across threads just like the ``UPDATE ... WHERE balance >= amount`` of
the real billing service. Configurable to fail, and records every call.
"""

import threading
from uuid import uuid4

from rto.wallet.port import WalletChargeGateway, WalletChargeResult


class InMemoryWallet(WalletChargeGateway):
    """Configurable fake wallet."""

    def __init__(self, balances: dict[str, float] | None = None) -> None:
        self._balances: dict[str, float] = dict(balances or {})
        self._lock = threading.Lock()
        self.should_succeed: bool = True
        self.failure_reason: str = "Wallet service unavailable"
        self.reversal_should_succeed: bool = True
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Wallet service unavailable",
        reversal_should_succeed: bool = True,
    ) -> None:
        """Configure wallet behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.reversal_should_succeed = reversal_should_succeed

    def set_balance(self, company_id: str, amount: float) -> None:
        with self._lock:
            self._balances[company_id] = float(amount)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def get_balance(self, company_id: str) -> float:
        with self._lock:
            return self._balances.get(company_id, 0.0)

    def has_minimum_balance(self, company_id: str, amount: float) -> bool:
        return self.get_balance(company_id) >= amount

    def handle_rto_charge(
        self,
        company_id: str,
        amount: float,
        reference: str,
        description: str | None = None,
    ) -> WalletChargeResult:
        self.calls.append(
            {
                "method": "handle_rto_charge",
                "company_id": company_id,
                "amount": amount,
                "reference": reference,
                "description": description,
            }
        )

        if not self.should_succeed:
            return WalletChargeResult(success=False, error=self.failure_reason)

        with self._lock:
            balance = self._balances.get(company_id, 0.0)
            if balance < amount:
                return WalletChargeResult(success=False, new_balance=balance, error="Insufficient balance")
            self._balances[company_id] = balance - amount
            new_balance = self._balances[company_id]

        return WalletChargeResult(
            success=True,
            new_balance=new_balance,
            transaction_id=f"wtx_{uuid4().hex[:12]}",
        )

    def reverse_rto_charge(self, company_id: str, amount: float, reference: str) -> WalletChargeResult:
        self.calls.append(
            {
                "method": "reverse_rto_charge",
                "company_id": company_id,
                "amount": amount,
                "reference": reference,
            }
        )

        if not self.reversal_should_succeed:
            return WalletChargeResult(success=False, error=self.failure_reason)

        with self._lock:
            self._balances[company_id] = self._balances.get(company_id, 0.0) + amount
            new_balance = self._balances[company_id]

        return WalletChargeResult(
            success=True,
            new_balance=new_balance,
            transaction_id=f"wrv_{uuid4().hex[:12]}",
        )
