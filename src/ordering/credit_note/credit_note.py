"""CreditNote aggregate (CQRS): a partial or full monetary reversal of one order.

Credit note lines reuse the unit prices frozen on the order line they
reverse, so a credit can never be priced differently from what was
charged. Unless the note is flagged as a goodwill gesture, the quantity
credited per product across all notes of an order cannot exceed the
quantity ordered.
"""

import json
from datetime import UTC, datetime
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
)

from ordering.credit_note.events import CreditNoteIssued, CreditNoteRefunded
from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.pricing.aggregation import aggregate, parse_breakdown
from ordering.pricing.line_item import LinePrice, reprice, validate_quantity
from ordering.pricing.money import to_rate


class CreditNoteStatus(Enum):
    PENDING = "pending"
    REFUNDED = "refunded"


@ordering.entity(part_of="CreditNote")
class CreditNoteItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
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


@ordering.aggregate
class CreditNote:
    order_id = Identifier(required=True)
    customer_id = Identifier()
    items = HasMany(CreditNoteItem)
    total_amount_ht_cents = Integer(default=0, min_value=0)
    tax_cents = Integer(default=0, min_value=0)
    total_amount_ttc_cents = Integer(default=0, min_value=0)
    vat_breakdown = Text(default="[]")
    reason = String(required=True, max_length=255)
    description = Text()
    payment_method = String(required=True, max_length=50)
    status = String(choices=CreditNoteStatus, default=CreditNoteStatus.PENDING.value)
    goodwill = Boolean(default=False)
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()
    refunded_at = DateTime()

    @invariant.post
    def vat_cannot_be_negative(self):
        if (self.total_amount_ttc_cents or 0) < (self.total_amount_ht_cents or 0):
            raise ValidationError({"total_amount_ttc": ["Total TTC cannot be lower than total HT"]})

    @invariant.post
    def totals_must_match_items(self):
        if not self.items:
            return
        expected = aggregate(item.line_price() for item in self.items)
        stored = (self.total_amount_ht_cents, self.tax_cents, self.total_amount_ttc_cents)
        if stored != (expected.subtotal_ht, expected.tax, expected.total_ttc):
            raise ValidationError({"totals": ["Credit note totals do not match its items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(
        cls,
        order,
        lines,
        reason,
        payment_method,
        description=None,
        notes=None,
        goodwill=False,
        already_credited=None,
    ):
        """Issue a credit note against ``order``.

        Args:
            lines: iterable of ``{"product_id", "quantity"}`` dicts.
            already_credited: quantities per product id credited by earlier
                notes of the same order.
        """
        errors = {}
        if not reason or not reason.strip():
            errors["reason"] = ["A reason is required"]
        if not payment_method or not payment_method.strip():
            errors["payment_method"] = ["A payment method is required"]
        if not lines:
            errors["items"] = ["A credit note needs at least one item"]
        if errors:
            raise ValidationError(errors)

        already_credited = already_credited or {}
        seen = set()
        credit_items = []
        for line in lines:
            product_id = str(line["product_id"])
            if product_id in seen:
                raise ValidationError({"items": [f"Product {product_id} is listed twice"]})
            seen.add(product_id)

            order_item = order.find_item(product_id)
            if order_item is None:
                raise ValidationError({"items": [f"Product {product_id} is not part of order {order.id}"]})

            quantity = validate_quantity(line["quantity"])
            if not goodwill and already_credited.get(product_id, 0) + quantity > order_item.quantity:
                raise ValidationError(
                    {
                        "items": [
                            f"Cannot credit {quantity} x {product_id}: "
                            f"{order_item.quantity} ordered, {already_credited.get(product_id, 0)} already credited"
                        ]
                    }
                )

            price = reprice(order_item.line_price(), quantity)
            credit_items.append(
                CreditNoteItem(
                    product_id=product_id,
                    name=order_item.name,
                    quantity=price.quantity,
                    unit_price_ht_cents=price.unit_price_ht,
                    unit_price_ttc_cents=price.unit_price_ttc,
                    total_price_ht_cents=price.total_price_ht,
                    total_price_ttc_cents=price.total_price_ttc,
                    vat_rate=float(price.vat_rate),
                )
            )

        totals = aggregate(item.line_price() for item in credit_items)
        now = datetime.now(UTC)
        credit_note = cls(
            order_id=str(order.id),
            customer_id=order.customer_id,
            reason=reason.strip(),
            description=description,
            payment_method=payment_method.strip(),
            status=CreditNoteStatus.PENDING.value,
            goodwill=goodwill,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        with atomic_change(credit_note):
            for item in credit_items:
                credit_note.add_items(item)
            credit_note.total_amount_ht_cents = totals.subtotal_ht
            credit_note.tax_cents = totals.tax
            credit_note.total_amount_ttc_cents = totals.total_ttc
            credit_note.vat_breakdown = totals.breakdown_json()

        credit_note.raise_(
            CreditNoteIssued(
                credit_note_id=str(credit_note.id),
                order_id=str(order.id),
                customer_id=str(order.customer_id) if order.customer_id else None,
                reason=credit_note.reason,
                payment_method=credit_note.payment_method,
                goodwill=goodwill,
                items=json.dumps([{"product_id": str(i.product_id), "quantity": i.quantity} for i in credit_items]),
                total_amount_ht_cents=totals.subtotal_ht,
                total_amount_ttc_cents=totals.total_ttc,
                issued_at=now,
            )
        )
        return credit_note

    def breakdown(self) -> list[dict]:
        return parse_breakdown(self.vat_breakdown)

    def credited_quantities(self) -> dict[str, int]:
        return {str(item.product_id): item.quantity for item in self.items}

    def mark_refunded(self):
        if CreditNoteStatus(self.status) != CreditNoteStatus.PENDING:
            raise ConflictError(f"Credit note {self.id} is already {self.status}")

        now = datetime.now(UTC)
        self.status = CreditNoteStatus.REFUNDED.value
        self.refunded_at = now
        self.updated_at = now

        self.raise_(
            CreditNoteRefunded(
                credit_note_id=str(self.id),
                order_id=str(self.order_id),
                total_amount_ttc_cents=self.total_amount_ttc_cents,
                refunded_at=now,
            )
        )
