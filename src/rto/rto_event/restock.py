"""Restock — put the units of a QC-passed return back into warehouse stock.

Every SKU of the order is resolved to an inventory record before any stock is
touched. Increments then run inside a unit of work that registers a negative
adjustment per increment, so a failure midway leaves stock as it was.
"""

from collections import Counter
from dataclasses import dataclass, field
from functools import partial

import structlog
from protean.utils.globals import current_domain

from rto.dependencies import RTODependencies
from rto.errors import InventoryNotFound, InvalidState, QCNotPassed
from rto.inventory.port import InventoryRecord
from rto.rto_event.rto_event import RTOEvent, ReturnStatus
from rto.shipment.order import Order
from rto.storage.unit_of_work import rto_unit_of_work
from rto.utils.logging import rto_log_context

logger = structlog.get_logger(__name__)


@dataclass
class RestockResult:
    success: bool
    rto_event_id: str
    restocked_units: int = 0
    lines: list[dict] = field(default_factory=list)
    message: str | None = None


class RestockExecutor:
    def __init__(self, deps: RTODependencies) -> None:
        self.deps = deps

    def perform_restock(self, rto_event_id: str, performed_by: str | None = None) -> RestockResult:
        with rto_log_context(operation="perform_restock", rto_event_id=rto_event_id):
            rto_repo = current_domain.repository_for(RTOEvent)
            rto_event = rto_repo.get_rto(rto_event_id)

            if rto_event.current_status() != ReturnStatus.QC_COMPLETED:
                raise InvalidState(
                    f"RTO must complete QC before restock (current status: {rto_event.return_status})",
                    current_status=rto_event.return_status,
                )
            if not (rto_event.qc_result and rto_event.qc_result.passed is True):
                raise QCNotPassed()

            order = current_domain.repository_for(Order).get_order(rto_event.order_id)
            quantities = Counter()
            for item in order.items:
                quantities[item.sku] += item.quantity
            lines = [{"sku": sku, "quantity": quantity} for sku, quantity in quantities.items()]

            if not lines:
                logger.info("Order has no line items, nothing to restock", order_id=rto_event.order_id)
                return RestockResult(success=True, rto_event_id=rto_event_id, message="No line items to restock")

            records = self._resolve_inventory(lines, rto_event.warehouse_id)

            with rto_unit_of_work("perform_restock") as work:
                for line in lines:
                    record = records[line["sku"]]
                    self.deps.inventory.adjust_stock(record.inventory_id, line["quantity"])
                    work.on_rollback(
                        f"revert stock of {line['sku']}",
                        partial(self.deps.inventory.adjust_stock, record.inventory_id, -line["quantity"]),
                    )

                rto_event.mark_restocked(lines, performed_by=performed_by)
                rto_repo.add(rto_event)
                work.claims.release_shipment(str(rto_event.shipment_id))

            units = sum(line["quantity"] for line in lines)
            logger.info("RTO restocked", units=units, warehouse_id=rto_event.warehouse_id)
            return RestockResult(success=True, rto_event_id=rto_event_id, restocked_units=units, lines=lines)

    def _resolve_inventory(self, lines: list[dict], warehouse_id: str | None) -> dict[str, InventoryRecord]:
        records = {}
        missing = []
        for line in lines:
            record = self.deps.inventory.get_inventory_by_sku(line["sku"], warehouse_id)
            if record is None:
                missing.append(line["sku"])
            else:
                records[line["sku"]] = record

        if missing:
            raise InventoryNotFound(missing, str(warehouse_id))
        return records
