"""Cart item management: commands and handler.

Carts are addressed by session id. ``AddToCart`` opens a cart when the
session has none (or only an expired one); the other commands require an
active cart to exist.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import DEFAULT_TTL_HOURS, ShoppingCart
from ordering.cart.lookup import active_cart
from ordering.domain import ordering
from ordering.errors import NotFoundError

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    description = Text()
    image_url = String(max_length=500)
    unit_price_ht_cents = Integer(required=True, min_value=0)
    vat_rate = Float(required=True)
    quantity = Integer(required=True, min_value=1)
    ttl_hours = Integer(default=DEFAULT_TTL_HOURS)


@ordering.command(part_of="ShoppingCart")
class UpdateCartItemQuantity:
    session_id = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    session_id = String(required=True, max_length=255)
    product_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    session_id = String(required=True, max_length=255)


def require_active_cart(session_id) -> ShoppingCart:
    cart = active_cart(session_id)
    if cart is None:
        raise NotFoundError(f"No active cart for session {session_id}")
    return cart


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)

        cart = active_cart(command.session_id, include_expired=True)
        if cart is not None and cart.is_expired():
            cart.expire()
            repo.add(cart)
            logger.info("Expired stale cart", cart_id=str(cart.id), session_id=command.session_id)
            cart = None

        if cart is None:
            cart = ShoppingCart.create(
                session_id=command.session_id,
                customer_id=command.customer_id,
                ttl_hours=command.ttl_hours,
            )
            logger.info("Opened cart", cart_id=str(cart.id), session_id=command.session_id)

        cart.add_item(
            product_id=command.product_id,
            name=command.name,
            description=command.description,
            image_url=command.image_url,
            unit_price_ht_cents=command.unit_price_ht_cents,
            vat_rate=command.vat_rate,
            quantity=command.quantity,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_item_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = require_active_cart(command.session_id)
        cart.update_item_quantity(product_id=command.product_id, quantity=command.quantity)
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = require_active_cart(command.session_id)
        cart.remove_item(product_id=command.product_id)
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = require_active_cart(command.session_id)
        cart.clear()
        repo.add(cart)
        return str(cart.id)
