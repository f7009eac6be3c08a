"""Inventory adjuster port — warehouse stock as seen by the restock step."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InventoryRecord:
    inventory_id: str
    sku: str
    warehouse_id: str
    on_hand: int


class InventoryAdjuster(ABC):
    @abstractmethod
    def get_inventory_by_sku(self, sku: str, warehouse_id: str) -> InventoryRecord | None:
        """Look up the stock record of a SKU in a warehouse."""
        ...

    @abstractmethod
    def adjust_stock(self, inventory_id: str, delta: int) -> InventoryRecord:
        """Atomically add ``delta`` (may be negative) to on-hand stock."""
        ...
