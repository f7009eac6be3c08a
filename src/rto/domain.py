"""RTO bounded context — Return-to-Origin lifecycle for failed deliveries.

Owns the RTOEvent aggregate and the workflow around it: triggering reverse
shipments against the seller's wallet, tracking the return leg, quality
inspection at the warehouse and the final restock/disposition. Shipments,
orders and NDR records are external entities that the engine reads and writes
only within its own status vocabulary.
"""

import structlog
from protean.domain import Domain

from rto.utils.logging import configure_logging

configure_logging()

rto = Domain(name="rto")

logger = structlog.get_logger(__name__)
