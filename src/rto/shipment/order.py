"""Order aggregate — the seller order behind a shipment.

Read during restock to enumerate the SKUs coming back to stock. The engine
also stamps the order status once a return is triggered.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, HasMany, Identifier, Integer, String

from rto.domain import rto


@rto.entity(part_of="Order")
class OrderLineItem:
    sku = String(required=True, max_length=100)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)


@rto.aggregate
class Order:
    order_number = String(max_length=100)
    company_id = Identifier(required=True)
    status = String(max_length=50, default="shipped")
    items = HasMany(OrderLineItem)
    updated_at = DateTime()

    def mark_rto_initiated(self) -> str:
        """Stamp the order as returning. Returns the previous status."""
        previous = self.status
        self.status = "rto_initiated"
        self.updated_at = datetime.now(UTC)
        return previous
