"""Order aggregate (CQRS): the immutable monetary record of a checkout.

An order is created exactly once per paid checkout. Its lines are verbatim
copies of the cart lines at that moment (name, description, quantity, all
four price fields and the VAT rate) and its totals are the cart totals
passed through unchanged. Nothing on an order is ever re-derived from the
catalogue. After placement only the delivery flag and the internal notes
may change; reversals go through credit notes.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import OrderDeliveryStatusChanged, OrderPlaced
from ordering.pricing.aggregation import CartTotals, aggregate, parse_breakdown
from ordering.pricing.line_item import LinePrice
from ordering.pricing.money import to_rate
from ordering.shared.snapshots import AddressSnapshot, CustomerSnapshot, snapshot_json

# Fields copied verbatim from a cart line into an order line
LINE_FIELDS = (
    "product_id",
    "name",
    "description",
    "image_url",
    "position",
    "quantity",
    "unit_price_ht_cents",
    "unit_price_ttc_cents",
    "total_price_ht_cents",
    "total_price_ttc_cents",
    "vat_rate",
)


@ordering.entity(part_of="Order")
class OrderItem:
    """A product line frozen at checkout time."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    description = Text()
    image_url = String(max_length=500)
    position = Integer(default=0)
    quantity = Integer(required=True, min_value=1)
    unit_price_ht_cents = Integer(required=True, min_value=0)
    unit_price_ttc_cents = Integer(required=True, min_value=0)
    total_price_ht_cents = Integer(required=True, min_value=0)
    total_price_ttc_cents = Integer(required=True, min_value=0)
    vat_rate = Float(required=True, min_value=0.0, max_value=100.0)

    def line_price(self) -> LinePrice:
        return LinePrice(
            quantity=self.quantity,
            vat_rate=to_rate(self.vat_rate),
            unit_price_ht=self.unit_price_ht_cents,
            unit_price_ttc=self.unit_price_ttc_cents,
            total_price_ht=self.total_price_ht_cents,
            total_price_ttc=self.total_price_ttc_cents,
        )

    def snapshot(self) -> dict:
        return {field: getattr(self, field) for field in LINE_FIELDS}


@ordering.aggregate
class Order:
    customer_id = Identifier()
    cart_id = Identifier(required=True)
    customer = ValueObject(CustomerSnapshot)
    shipping_address = ValueObject(AddressSnapshot)
    billing_address = ValueObject(AddressSnapshot)
    items = HasMany(OrderItem)
    total_amount_ht_cents = Integer(default=0)
    tax_cents = Integer(default=0)
    total_amount_ttc_cents = Integer(default=0)
    vat_breakdown = Text(default="[]")
    currency = String(max_length=3, default="eur")
    payment_method = String(max_length=50)
    payment_intent_id = String(required=True, max_length=255)
    delivered = Boolean(default=False)
    delivered_at = DateTime()
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_must_match_items(self):
        if not self.items:
            return
        expected = aggregate(item.line_price() for item in self.items)
        stored = (self.total_amount_ht_cents, self.tax_cents, self.total_amount_ttc_cents)
        if stored != (expected.subtotal_ht, expected.tax, expected.total_ttc):
            raise ValidationError({"totals": ["Order totals do not match its items"]})

    @invariant.post
    def line_totals_must_match_unit_prices(self):
        for item in self.items:
            if (
                item.total_price_ht_cents != item.unit_price_ht_cents * item.quantity
                or item.total_price_ttc_cents != item.unit_price_ttc_cents * item.quantity
            ):
                raise ValidationError({"items": [f"Line totals for product {item.product_id} are inconsistent"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        cart_id,
        customer,
        shipping_address,
        items,
        totals: CartTotals,
        payment_intent_id,
        billing_address=None,
        customer_id=None,
        payment_method=None,
        currency="eur",
    ):
        """Create an order from checkout data.

        Args:
            items: list of line snapshots (dicts keyed by ``LINE_FIELDS``),
                copied onto the order as they are.
            totals: the cart totals, stored unchanged. The invariant checks
                they agree with the lines.
        """
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})
        if customer is None or not customer.email:
            raise ValidationError({"customer": ["Customer email is required"]})
        if shipping_address is None:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})

        now = datetime.now(UTC)
        order = cls(
            cart_id=cart_id,
            customer_id=customer_id,
            customer=customer,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            currency=currency,
            payment_method=payment_method,
            payment_intent_id=payment_intent_id,
            delivered=False,
            created_at=now,
            updated_at=now,
        )
        with atomic_change(order):
            for line in items:
                order.add_items(OrderItem(**{field: line.get(field) for field in LINE_FIELDS}))
            order.total_amount_ht_cents = totals.subtotal_ht
            order.tax_cents = totals.tax
            order.total_amount_ttc_cents = totals.total_ttc
            order.vat_breakdown = totals.breakdown_json()

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id) if customer_id else None,
                cart_id=str(cart_id),
                payment_intent_id=payment_intent_id,
                email=customer.email,
                customer=snapshot_json(order.customer),
                shipping_address=snapshot_json(order.shipping_address),
                billing_address=snapshot_json(order.billing_address),
                items=json.dumps([item.snapshot() for item in order.ordered_items()]),
                total_amount_ht_cents=order.total_amount_ht_cents,
                tax_cents=order.tax_cents,
                total_amount_ttc_cents=order.total_amount_ttc_cents,
                vat_breakdown=order.vat_breakdown,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def ordered_items(self):
        return sorted(self.items, key=lambda item: (item.position or 0, str(item.product_id)))

    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def breakdown(self) -> list[dict]:
        return parse_breakdown(self.vat_breakdown)

    # -------------------------------------------------------------------
    # Post-placement changes
    # -------------------------------------------------------------------
    def set_delivery_status(self, delivered):
        """Flag the order as delivered (or not). Returns False when nothing changed."""
        delivered = bool(delivered)
        if bool(self.delivered) == delivered:
            return False

        now = datetime.now(UTC)
        with atomic_change(self):
            self.delivered = delivered
            self.delivered_at = now if delivered else None
            self.updated_at = now

        self.raise_(
            OrderDeliveryStatusChanged(
                order_id=str(self.id),
                delivered=delivered,
                changed_at=now,
            )
        )
        return True

    def update_notes(self, notes):
        self.notes = notes
        self.updated_at = datetime.now(UTC)
