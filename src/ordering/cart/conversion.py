"""Cart conversion: clear a cart once its order has been persisted."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class ConvertCart:
    """Mark a cart as converted into an order and clear its lines."""

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ConvertCartHandler:
    @handle(ConvertCart)
    def convert_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.convert(order_id=command.order_id)
        repo.add(cart)
