"""Credit note issuance and refund: commands, handler and lookups."""

import json
from collections import Counter

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.locking import CartLocks
from ordering.credit_note.credit_note import CreditNote
from ordering.domain import ordering
from ordering.errors import NotFoundError
from ordering.order.queries import load_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="CreditNote")
class IssueCreditNote:
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON array of {product_id, quantity}
    reason = String(required=True, max_length=255)
    payment_method = String(required=True, max_length=50)
    description = Text()
    notes = Text()
    goodwill = Boolean(default=False)


@ordering.command(part_of="CreditNote")
class MarkCreditNoteRefunded:
    credit_note_id = Identifier(required=True)


def load_credit_note(credit_note_id) -> CreditNote:
    try:
        return current_domain.repository_for(CreditNote).get(credit_note_id)
    except ObjectNotFoundError as exc:
        raise NotFoundError(f"Credit note {credit_note_id} does not exist") from exc


def credit_notes_for_order(order_id):
    repo = current_domain.repository_for(CreditNote)
    records = repo._dao.query.filter(order_id=str(order_id)).all().items
    return [repo.get(record.id) for record in records]


def credited_quantities(order_id) -> Counter:
    """Quantities per product already credited against an order."""
    totals = Counter()
    for credit_note in credit_notes_for_order(order_id):
        totals.update(credit_note.credited_quantities())
    return totals


def order_lock_key(order_id) -> str:
    return f"order:{order_id}"


def issue_credit_note(locks: CartLocks, command: IssueCreditNote):
    """Process ``command`` while holding the order's lock.

    The cumulative cap reads every earlier note for the order before the new
    one is written; concurrent issuance for one order must not interleave.
    """
    with locks.hold(order_lock_key(command.order_id)):
        return current_domain.process(command, asynchronous=False)


@ordering.command_handler(part_of=CreditNote)
class CreditNoteHandler:
    @handle(IssueCreditNote)
    def issue_credit_note(self, command):
        order = load_order(command.order_id)
        lines = json.loads(command.items) if isinstance(command.items, str) else command.items

        credit_note = CreditNote.issue(
            order=order,
            lines=lines,
            reason=command.reason,
            payment_method=command.payment_method,
            description=command.description,
            notes=command.notes,
            goodwill=command.goodwill,
            already_credited=credited_quantities(order.id),
        )
        current_domain.repository_for(CreditNote).add(credit_note)

        logger.info(
            "Credit note issued",
            credit_note_id=str(credit_note.id),
            order_id=str(order.id),
            total_ttc_cents=credit_note.total_amount_ttc_cents,
            goodwill=bool(command.goodwill),
        )
        return str(credit_note.id)

    @handle(MarkCreditNoteRefunded)
    def mark_refunded(self, command):
        credit_note = load_credit_note(command.credit_note_id)
        credit_note.mark_refunded()
        current_domain.repository_for(CreditNote).add(credit_note)
        logger.info("Credit note refunded", credit_note_id=str(credit_note.id))
