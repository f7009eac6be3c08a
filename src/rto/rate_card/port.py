"""Rate card port — how much an RTO costs the seller."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RTOChargeQuote:
    final_price: float
    breakdown: dict = field(default_factory=dict)


class RateCardCalculator(ABC):
    @abstractmethod
    def calculate_rto_charges(self, shipment, reason: str) -> RTOChargeQuote:
        """Quote the RTO charge for a shipment."""
        ...
