"""Shopping Cart aggregate (CQRS): a session's working set of priced lines.

Each line snapshots the product name, description, HT price and VAT rate at
the moment it is added; later catalogue changes never reach an existing
line. Every mutation re-aggregates the cart totals inside the same atomic
change, and a post-invariant refuses any state where the stored totals
disagree with the lines.

Lifecycle:
    Active -> Converted   (an order was placed from the cart, lines cleared)
    Active -> Expired     (retention window elapsed, 24 hours by default)
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

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

from ordering.cart.events import (
    CartCheckoutDetailsRecorded,
    CartCheckoutStarted,
    CartCleared,
    CartConverted,
    CartExpired,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)
from ordering.domain import ordering
from ordering.errors import ConflictError, NotFoundError
from ordering.pricing.aggregation import CartTotals, aggregate, parse_breakdown
from ordering.pricing.line_item import LinePrice, price_from_ht, reprice, validate_quantity
from ordering.pricing.money import rate_label, to_rate
from ordering.shared.snapshots import AddressSnapshot, CustomerSnapshot, snapshot_json

DEFAULT_TTL_HOURS = 24


class CartStatus(Enum):
    ACTIVE = "Active"
    CONVERTED = "Converted"
    EXPIRED = "Expired"


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes come back from some providers; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@ordering.entity(part_of="ShoppingCart")
class CartItem:
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
    added_at = DateTime()

    def line_price(self) -> LinePrice:
        return LinePrice(
            quantity=self.quantity,
            vat_rate=to_rate(self.vat_rate),
            unit_price_ht=self.unit_price_ht_cents,
            unit_price_ttc=self.unit_price_ttc_cents,
            total_price_ht=self.total_price_ht_cents,
            total_price_ttc=self.total_price_ttc_cents,
        )

    def apply_price(self, line: LinePrice):
        self.quantity = line.quantity
        self.unit_price_ht_cents = line.unit_price_ht
        self.unit_price_ttc_cents = line.unit_price_ttc
        self.total_price_ht_cents = line.total_price_ht
        self.total_price_ttc_cents = line.total_price_ttc
        self.vat_rate = float(line.vat_rate)


@ordering.aggregate
class ShoppingCart:
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()
    items = HasMany(CartItem)
    subtotal_ht_cents = Integer(default=0)
    tax_cents = Integer(default=0)
    total_ttc_cents = Integer(default=0)
    vat_breakdown = Text(default="[]")  # JSON array of {rate, amount}
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    customer = ValueObject(CustomerSnapshot)
    shipping_address = ValueObject(AddressSnapshot)
    billing_address = ValueObject(AddressSnapshot)
    use_same_billing_address = Boolean(default=True)
    checkout_sessions = Text(default="{}")  # JSON object: payment session id -> checkout snapshot
    order_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()
    expires_at = DateTime()

    @invariant.post
    def totals_must_match_items(self):
        expected = aggregate(item.line_price() for item in self.items)
        stored = (self.subtotal_ht_cents or 0, self.tax_cents or 0, self.total_ttc_cents or 0)
        if stored != (expected.subtotal_ht, expected.tax, expected.total_ttc):
            raise ValidationError({"totals": ["Cart totals do not match its items"]})
        if (self.vat_breakdown or "[]") != expected.breakdown_json():
            raise ValidationError({"vat_breakdown": ["VAT breakdown does not match cart items"]})

    @invariant.post
    def product_lines_must_be_unique(self):
        product_ids = [str(item.product_id) for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id, customer_id=None, ttl_hours=DEFAULT_TTL_HOURS):
        if ttl_hours is None or ttl_hours <= 0:
            raise ValidationError({"ttl_hours": ["Cart retention must be a positive number of hours"]})

        now = datetime.now(UTC)
        return cls(
            session_id=session_id,
            customer_id=customer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self):
        return CartStatus(self.status) == CartStatus.ACTIVE

    def is_expired(self, now=None):
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return _as_utc(now) >= _as_utc(self.expires_at)

    def ordered_items(self):
        return sorted(self.items, key=lambda item: (item.position or 0, str(item.product_id)))

    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def totals(self) -> CartTotals:
        return aggregate(item.line_price() for item in self.ordered_items())

    def breakdown(self) -> list[dict]:
        return parse_breakdown(self.vat_breakdown)

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------
    def _assert_active(self, action):
        if not self.is_active:
            raise ConflictError(f"Cannot {action}: cart {self.id} is {self.status}")

    def _require_item(self, product_id):
        item = self.find_item(product_id)
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in cart {self.id}")
        return item

    def _refresh_totals(self):
        totals = aggregate(item.line_price() for item in self.items)
        self.subtotal_ht_cents = totals.subtotal_ht
        self.tax_cents = totals.tax
        self.total_ttc_cents = totals.total_ttc
        self.vat_breakdown = totals.breakdown_json()

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        product_id,
        name,
        unit_price_ht_cents,
        vat_rate,
        quantity=1,
        description=None,
        image_url=None,
    ):
        """Add a product line, or increase the quantity of the existing line.

        An existing line keeps the price and VAT rate it was snapshotted
        with; only its quantity changes.
        """
        self._assert_active("add items")
        validate_quantity(quantity)

        existing = self.find_item(product_id)
        now = datetime.now(UTC)

        with atomic_change(self):
            if existing:
                item = existing
                item.apply_price(reprice(existing.line_price(), existing.quantity + quantity))
            else:
                line = price_from_ht(unit_price_ht_cents, quantity, vat_rate)
                next_position = max((i.position or 0 for i in self.items), default=-1) + 1
                item = CartItem(
                    product_id=product_id,
                    name=name,
                    description=description,
                    image_url=image_url,
                    position=next_position,
                    quantity=line.quantity,
                    unit_price_ht_cents=line.unit_price_ht,
                    unit_price_ttc_cents=line.unit_price_ttc,
                    total_price_ht_cents=line.total_price_ht,
                    total_price_ttc_cents=line.total_price_ttc,
                    vat_rate=float(line.vat_rate),
                    added_at=now,
                )
                self.add_items(item)
            self._refresh_totals()
            self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                session_id=self.session_id,
                product_id=str(product_id),
                quantity=quantity,
                unit_price_ht_cents=item.unit_price_ht_cents,
                vat_rate=rate_label(to_rate(item.vat_rate)),
                total_ttc_cents=self.total_ttc_cents,
            )
        )
        return item

    def update_item_quantity(self, product_id, quantity):
        """Set the quantity of a line. Quantities below one are rejected, not clamped."""
        self._assert_active("update quantities")
        validate_quantity(quantity)
        item = self._require_item(product_id)

        previous_quantity = item.quantity
        now = datetime.now(UTC)
        with atomic_change(self):
            item.apply_price(reprice(item.line_price(), quantity))
            self._refresh_totals()
            self.updated_at = now

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                total_ttc_cents=self.total_ttc_cents,
            )
        )

    def remove_item(self, product_id):
        self._assert_active("remove items")
        item = self._require_item(product_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.remove_items(item)
            self._refresh_totals()
            self.updated_at = now

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                total_ttc_cents=self.total_ttc_cents,
            )
        )

    def clear(self):
        """Remove every line; the cart stays active."""
        self._assert_active("clear the cart")

        removed = len(self.items)
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self._refresh_totals()
            self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def record_checkout_details(self, customer, shipping_address, billing_address=None, use_same_billing_address=True):
        self._assert_active("record checkout details")
        if customer is None or not customer.email:
            raise ValidationError({"customer": ["Customer email is required"]})
        if shipping_address is None:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})
        if not use_same_billing_address and billing_address is None:
            raise ValidationError({"billing_address": ["Billing address is required"]})

        with atomic_change(self):
            self.customer = customer
            self.shipping_address = shipping_address
            self.billing_address = shipping_address if use_same_billing_address else billing_address
            self.use_same_billing_address = use_same_billing_address
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCheckoutDetailsRecorded(
                cart_id=str(self.id),
                email=customer.email,
                shipping_address=snapshot_json(self.shipping_address),
                billing_address=snapshot_json(self.billing_address),
            )
        )

    def record_checkout_session(self, payment_session_id, snapshot: dict):
        """Remember what ``payment_session_id`` charges for.

        The order is later placed from this snapshot, so lines edited after
        the payment session opened never leak into it.
        """
        self._assert_active("start checkout")
        if snapshot.get("total_ttc_cents") != self.total_ttc_cents:
            raise ValidationError({"checkout": ["Checkout snapshot does not match the cart total"]})

        sessions = json.loads(self.checkout_sessions or "{}")
        sessions[str(payment_session_id)] = snapshot
        self.checkout_sessions = json.dumps(sessions)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCheckoutStarted(
                cart_id=str(self.id),
                payment_session_id=str(payment_session_id),
                total_ttc_cents=self.total_ttc_cents,
            )
        )

    def checkout_session(self, payment_session_id) -> dict | None:
        return json.loads(self.checkout_sessions or "{}").get(str(payment_session_id))

    def convert(self, order_id):
        """Mark the cart as converted into ``order_id`` and clear its lines.

        The order is built from a checkout snapshot, so a cart emptied after
        payment still converts.
        """
        self._assert_active("convert")

        items_snapshot = [
            {"product_id": str(item.product_id), "quantity": item.quantity} for item in self.ordered_items()
        ]
        total_ttc = self.total_ttc_cents

        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self._refresh_totals()
            self.status = CartStatus.CONVERTED.value
            self.order_id = order_id
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartConverted(
                cart_id=str(self.id),
                order_id=str(order_id),
                items=json.dumps(items_snapshot),
                total_ttc_cents=total_ttc,
            )
        )

    def expire(self, now=None):
        self._assert_active("expire")
        now = now or datetime.now(UTC)

        self.status = CartStatus.EXPIRED.value
        self.updated_at = now

        self.raise_(
            CartExpired(
                cart_id=str(self.id),
                session_id=self.session_id,
                expired_at=now,
            )
        )
