"""Weight/zone rate card.

The first 0.5 kg slab is charged at the zone's base price; every further
started 0.5 kg slab adds the zone's increment. Unknown zones fall back to the
costliest zone.
"""

import math

from rto.rate_card.port import RateCardCalculator, RTOChargeQuote

SLAB_KG = 0.5

DEFAULT_BASE_PRICES = {
    "zone_a": 40.0,  # within city
    "zone_b": 45.0,  # within state
    "zone_c": 55.0,  # metro to metro
    "zone_d": 65.0,  # rest of India
    "zone_e": 80.0,  # north-east, J&K
}

DEFAULT_SLAB_INCREMENTS = {
    "zone_a": 15.0,
    "zone_b": 18.0,
    "zone_c": 22.0,
    "zone_d": 28.0,
    "zone_e": 35.0,
}


class WeightZoneRateCard(RateCardCalculator):
    def __init__(
        self,
        base_prices: dict[str, float] | None = None,
        slab_increments: dict[str, float] | None = None,
        fallback_zone: str = "zone_e",
    ) -> None:
        self.base_prices = dict(base_prices or DEFAULT_BASE_PRICES)
        self.slab_increments = dict(slab_increments or DEFAULT_SLAB_INCREMENTS)
        self.fallback_zone = fallback_zone

    def calculate_rto_charges(self, shipment, reason: str) -> RTOChargeQuote:
        zone = (shipment.zone or "").strip().lower()
        if zone not in self.base_prices:
            zone = self.fallback_zone

        weight = max(float(shipment.weight or SLAB_KG), SLAB_KG)
        slabs = math.ceil(round(weight / SLAB_KG, 6))
        base = self.base_prices[zone]
        additional = (slabs - 1) * self.slab_increments[zone]
        final_price = round(base + additional, 2)

        return RTOChargeQuote(
            final_price=final_price,
            breakdown={
                "model": "weight_zone",
                "zone": zone,
                "weight": weight,
                "slabs": slabs,
                "base": base,
                "additional": additional,
                "reason": reason,
            },
        )
