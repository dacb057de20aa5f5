"""Order placement: the single transactional write of a checkout.

The handler runs inside one unit of work, so the order header, its lines
and its address snapshots are persisted together or not at all.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.order import Order
from ordering.order.queries import order_for_payment_intent
from ordering.pricing.aggregation import CartTotals
from ordering.shared.snapshots import upgrade_address_snapshot, upgrade_customer_snapshot

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    cart_id = Identifier(required=True)
    customer_id = Identifier()
    payment_intent_id = String(required=True, max_length=255)
    payment_method = String(max_length=50)
    currency = String(max_length=3, default="eur")
    customer = Text(required=True)  # JSON customer snapshot (versioned)
    shipping_address = Text(required=True)  # JSON address snapshot (versioned)
    billing_address = Text()
    items = Text(required=True)  # JSON array of line snapshots
    subtotal_ht_cents = Integer(required=True, min_value=0)
    tax_cents = Integer(required=True, min_value=0)
    total_ttc_cents = Integer(required=True, min_value=0)
    vat_breakdown = Text(required=True)  # JSON array of {rate, amount}


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        existing = order_for_payment_intent(command.payment_intent_id)
        if existing is not None:
            raise ConflictError(
                f"Payment {command.payment_intent_id} already produced order {existing.id}",
            )

        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        order = Order.place(
            cart_id=command.cart_id,
            customer_id=command.customer_id,
            customer=upgrade_customer_snapshot(command.customer),
            shipping_address=upgrade_address_snapshot(command.shipping_address),
            billing_address=upgrade_address_snapshot(command.billing_address),
            items=items,
            totals=CartTotals.from_stored(
                command.subtotal_ht_cents, command.tax_cents, command.total_ttc_cents, command.vat_breakdown
            ),
            payment_intent_id=command.payment_intent_id,
            payment_method=command.payment_method,
            currency=command.currency,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            cart_id=str(command.cart_id),
            payment_intent_id=command.payment_intent_id,
            total_ttc_cents=order.total_amount_ttc_cents,
        )
        return str(order.id)
