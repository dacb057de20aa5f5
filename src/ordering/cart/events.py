"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart (or its quantity increased)."""

    __version__ = 1

    cart_id = Identifier(required=True)
    session_id = String(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price_ht_cents = Integer(required=True)
    vat_rate = String(required=True)
    total_ttc_cents = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    total_ttc_cents = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    total_ttc_cents = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """Every line was removed from the cart at the shopper's request."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCheckoutDetailsRecorded:
    """Customer and address details were attached to the cart for checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    email = String(required=True)
    shipping_address = Text()
    billing_address = Text()


@ordering.event(part_of="ShoppingCart")
class CartCheckoutStarted:
    """A payment session was opened for the cart's current lines."""

    __version__ = 1

    cart_id = Identifier(required=True)
    payment_session_id = String(required=True)
    total_ttc_cents = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartConverted:
    """The cart produced an order and was cleared."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON array of {product_id, quantity}
    total_ttc_cents = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartExpired:
    """The cart outlived its retention window."""

    __version__ = 1

    cart_id = Identifier(required=True)
    session_id = String(required=True)
    expired_at = DateTime(required=True)
