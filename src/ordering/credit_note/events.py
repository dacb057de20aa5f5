"""Domain events for the CreditNote aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="CreditNote")
class CreditNoteIssued:
    __version__ = 1

    credit_note_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier()
    reason = String(required=True)
    payment_method = String(required=True)
    goodwill = Boolean(default=False)
    items = Text(required=True)  # JSON array of {product_id, quantity}
    total_amount_ht_cents = Integer(required=True)
    total_amount_ttc_cents = Integer(required=True)
    issued_at = DateTime(required=True)


@ordering.event(part_of="CreditNote")
class CreditNoteRefunded:
    __version__ = 1

    credit_note_id = Identifier(required=True)
    order_id = Identifier(required=True)
    total_amount_ttc_cents = Integer(required=True)
    refunded_at = DateTime(required=True)
