"""Rate card factory."""

from rto.rate_card.flat_rate import FlatRateCard
from rto.rate_card.port import RateCardCalculator
from rto.rate_card.zone_rate import WeightZoneRateCard


def build_rate_card(kind: str = "flat", flat_charge: float = 50.0) -> RateCardCalculator:
    """Build the configured calculator (``RTO_RATE_CARD``)."""
    if kind == "flat":
        return FlatRateCard(flat_charge=flat_charge)
    if kind == "zone":
        return WeightZoneRateCard()
    raise ValueError(f"Unknown rate card: {kind}")
