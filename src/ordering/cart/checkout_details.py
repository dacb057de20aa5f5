"""Attach buyer details and opened payment sessions to a cart during checkout."""

import json

from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import require_active_cart
from ordering.domain import ordering
from ordering.shared.snapshots import upgrade_address_snapshot, upgrade_customer_snapshot


@ordering.command(part_of="ShoppingCart")
class RecordCheckoutDetails:
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()
    customer = Text(required=True)  # JSON customer snapshot (versioned)
    shipping_address = Text(required=True)  # JSON address snapshot (versioned)
    billing_address = Text()
    use_same_billing_address = Boolean(default=True)


@ordering.command_handler(part_of=ShoppingCart)
class RecordCheckoutDetailsHandler:
    @handle(RecordCheckoutDetails)
    def record_checkout_details(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = require_active_cart(command.session_id)

        if command.customer_id and not cart.customer_id:
            cart.customer_id = command.customer_id

        cart.record_checkout_details(
            customer=upgrade_customer_snapshot(command.customer),
            shipping_address=upgrade_address_snapshot(command.shipping_address),
            billing_address=upgrade_address_snapshot(command.billing_address),
            use_same_billing_address=command.use_same_billing_address,
        )
        repo.add(cart)
        return str(cart.id)


@ordering.command(part_of="ShoppingCart")
class RecordCheckoutSession:
    session_id = String(required=True, max_length=255)
    payment_session_id = String(required=True, max_length=255)
    snapshot = Text(required=True)  # JSON: lines, totals and buyer details the session charges for


@ordering.command_handler(part_of=ShoppingCart)
class RecordCheckoutSessionHandler:
    @handle(RecordCheckoutSession)
    def record_checkout_session(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = require_active_cart(command.session_id)
        cart.record_checkout_session(command.payment_session_id, json.loads(command.snapshot))
        repo.add(cart)
        return str(cart.id)
