from rto.rate_card.port import RateCardCalculator, RTOChargeQuote


class FlatRateCard(RateCardCalculator):
    """Same charge for every RTO (``RTO_FLAT_CHARGE``, default 50)."""

    def __init__(self, flat_charge: float = 50.0) -> None:
        self.flat_charge = float(flat_charge)

    def calculate_rto_charges(self, shipment, reason: str) -> RTOChargeQuote:
        return RTOChargeQuote(
            final_price=self.flat_charge,
            breakdown={"model": "flat", "flat_charge": self.flat_charge, "reason": reason},
        )
