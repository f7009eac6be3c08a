"""In-memory stock ledger for development and testing."""

import threading
from uuid import uuid4

from rto.inventory.port import InventoryAdjuster, InventoryRecord


class InMemoryInventory(InventoryAdjuster):
    def __init__(self) -> None:
        self._records: dict[str, InventoryRecord] = {}
        self._lock = threading.Lock()
        self.should_succeed: bool = True
        self.failure_reason: str = "Inventory service unavailable"
        self.fail_on_sku: str | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Inventory service unavailable",
        fail_on_sku: str | None = None,
    ) -> None:
        """Fail every adjustment, or only adjustments of one SKU."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.fail_on_sku = fail_on_sku

    def add_record(self, sku: str, warehouse_id: str, on_hand: int = 0) -> InventoryRecord:
        record = InventoryRecord(
            inventory_id=f"inv-{uuid4().hex[:8]}",
            sku=sku,
            warehouse_id=warehouse_id,
            on_hand=on_hand,
        )
        with self._lock:
            self._records[record.inventory_id] = record
        return record

    def on_hand(self, sku: str, warehouse_id: str) -> int:
        record = self.get_inventory_by_sku(sku, warehouse_id)
        return record.on_hand if record else 0

    def get_inventory_by_sku(self, sku: str, warehouse_id: str) -> InventoryRecord | None:
        with self._lock:
            for record in self._records.values():
                if record.sku == sku and record.warehouse_id == warehouse_id:
                    return record
        return None

    def adjust_stock(self, inventory_id: str, delta: int) -> InventoryRecord:
        self.calls.append({"method": "adjust_stock", "inventory_id": inventory_id, "delta": delta})

        with self._lock:
            record = self._records.get(inventory_id)
            if record is None:
                raise KeyError(f"Unknown inventory record: {inventory_id}")
            if not self.should_succeed or (self.fail_on_sku and record.sku == self.fail_on_sku and delta > 0):
                raise RuntimeError(self.failure_reason)

            updated = InventoryRecord(
                inventory_id=record.inventory_id,
                sku=record.sku,
                warehouse_id=record.warehouse_id,
                on_hand=record.on_hand + delta,
            )
            self._records[inventory_id] = updated
            return updated
