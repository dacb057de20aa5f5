"""Ordering bounded context: carts, orders and credit notes.

Carts price their lines as products are added, checkout turns a paid cart
into an immutable order, and credit notes reverse all or part of an order.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
