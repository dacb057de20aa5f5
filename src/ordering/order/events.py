"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order was created from a paid checkout.

    Snapshots travel as versioned JSON so consumers can parse payloads
    written by earlier releases.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier()
    cart_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    email = String(required=True)
    customer = Text(required=True)
    shipping_address = Text(required=True)
    billing_address = Text()
    items = Text(required=True)  # JSON array of line snapshots
    total_amount_ht_cents = Integer(required=True)
    tax_cents = Integer(required=True)
    total_amount_ttc_cents = Integer(required=True)
    vat_breakdown = Text(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDeliveryStatusChanged:
    """The order was marked delivered, or the delivery mark was withdrawn."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered = Boolean(required=True)
    changed_at = DateTime(required=True)
