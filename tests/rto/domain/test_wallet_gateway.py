"""Tests for the in-memory wallet gateway."""

from concurrent.futures import ThreadPoolExecutor

from rto.wallet.fake_adapter import InMemoryWallet


class TestInMemoryWallet:
    def test_balance_defaults_to_zero(self):
        assert InMemoryWallet().get_balance("co-1") == 0.0

    def test_has_minimum_balance(self):
        wallet = InMemoryWallet({"co-1": 100})
        assert wallet.has_minimum_balance("co-1", 100) is True
        assert wallet.has_minimum_balance("co-1", 100.01) is False

    def test_charge_deducts(self):
        wallet = InMemoryWallet({"co-1": 1000})
        result = wallet.handle_rto_charge("co-1", 50, reference="rto-1")
        assert result.success is True
        assert result.new_balance == 950
        assert result.transaction_id.startswith("wtx_")
        assert wallet.get_balance("co-1") == 950

    def test_charge_refused_when_balance_short(self):
        wallet = InMemoryWallet({"co-1": 10})
        result = wallet.handle_rto_charge("co-1", 50, reference="rto-1")
        assert result.success is False
        assert wallet.get_balance("co-1") == 10

    def test_configured_failure(self):
        wallet = InMemoryWallet({"co-1": 1000})
        wallet.configure(should_succeed=False, failure_reason="Ledger locked")
        result = wallet.handle_rto_charge("co-1", 50, reference="rto-1")
        assert result.success is False
        assert result.error == "Ledger locked"
        assert wallet.get_balance("co-1") == 1000

    def test_reversal_credits_back(self):
        wallet = InMemoryWallet({"co-1": 1000})
        wallet.handle_rto_charge("co-1", 50, reference="rto-1")
        result = wallet.reverse_rto_charge("co-1", 50, reference="rto-1")
        assert result.success is True
        assert wallet.get_balance("co-1") == 1000

    def test_calls_recorded(self):
        wallet = InMemoryWallet({"co-1": 1000})
        wallet.handle_rto_charge("co-1", 50, reference="rto-1", description="RTO charge for AWB X")
        assert wallet.calls_to("handle_rto_charge")[0]["description"] == "RTO charge for AWB X"

    def test_concurrent_charges_never_overdraw(self):
        wallet = InMemoryWallet({"co-1": 500})

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: wallet.handle_rto_charge("co-1", 50, reference=f"rto-{i}"), range(20)))

        assert sum(1 for result in results if result.success) == 10
        assert wallet.get_balance("co-1") == 0
