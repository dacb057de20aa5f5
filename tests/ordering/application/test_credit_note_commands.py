"""Application tests for credit note issuance and refunds."""

import json
import threading
import time

import pytest
from ordering.cart.locking import InProcessCartLocks
from ordering.credit_note import issuance
from ordering.credit_note.credit_note import CreditNoteStatus
from ordering.credit_note.issuance import (
    IssueCreditNote,
    MarkCreditNoteRefunded,
    credit_notes_for_order,
    credited_quantities,
    issue_credit_note,
    load_credit_note,
    order_lock_key,
)
from ordering.domain import ordering
from ordering.errors import ConflictError, NotFoundError
from ordering.order.queries import load_order
from ordering.order.statistics import revenue_statistics
from protean import current_domain
from protean.exceptions import ValidationError


def _issue(order_id, lines, **overrides):
    fields = {
        "order_id": order_id,
        "items": json.dumps(lines),
        "reason": "Damaged on arrival",
        "payment_method": "card",
    }
    fields.update(overrides)
    return current_domain.process(IssueCreditNote(**fields), asynchronous=False)


@pytest.fixture()
def order_id(place_paid_order):
    return place_paid_order().order_id


class TestIssueCreditNote:
    def test_persists_note(self, order_id):
        note_id = _issue(order_id, [{"product_id": "prod-mug", "quantity": 1}], description="Chipped handle")
        note = load_credit_note(note_id)
        assert note.order_id == order_id
        assert note.total_amount_ttc_cents == 1210
        assert note.description == "Chipped handle"
        assert note.status == CreditNoteStatus.PENDING.value

    def test_order_is_untouched(self, order_id):
        _issue(order_id, [{"product_id": "prod-mug", "quantity": 2}])
        order = load_order(order_id)
        assert order.total_amount_ttc_cents == 4540
        assert order.find_item("prod-mug").quantity == 2

    def test_cumulative_cap(self, order_id):
        _issue(order_id, [{"product_id": "prod-mug", "quantity": 1}])
        _issue(order_id, [{"product_id": "prod-mug", "quantity": 1}])
        assert credited_quantities(order_id)["prod-mug"] == 2

        with pytest.raises(ValidationError):
            _issue(order_id, [{"product_id": "prod-mug", "quantity": 1}])
        assert len(credit_notes_for_order(order_id)) == 2

    def test_goodwill_credit(self, order_id):
        _issue(order_id, [{"product_id": "prod-mug", "quantity": 2}])
        note_id = _issue(order_id, [{"product_id": "prod-mug", "quantity": 1}], goodwill=True)
        assert load_credit_note(note_id).goodwill is True

    def test_missing_order(self):
        with pytest.raises(NotFoundError):
            _issue("ord-missing", [{"product_id": "prod-mug", "quantity": 1}])

    def test_unknown_product(self, order_id):
        with pytest.raises(ValidationError):
            _issue(order_id, [{"product_id": "prod-ghost", "quantity": 1}])


class TestRefund:
    def test_mark_refunded(self, order_id):
        note_id = _issue(order_id, [{"product_id": "prod-book", "quantity": 1}])
        current_domain.process(MarkCreditNoteRefunded(credit_note_id=note_id), asynchronous=False)
        note = load_credit_note(note_id)
        assert note.status == CreditNoteStatus.REFUNDED.value
        assert note.refunded_at is not None

    def test_refund_twice_is_a_conflict(self, order_id):
        note_id = _issue(order_id, [{"product_id": "prod-book", "quantity": 1}])
        current_domain.process(MarkCreditNoteRefunded(credit_note_id=note_id), asynchronous=False)
        with pytest.raises(ConflictError):
            current_domain.process(MarkCreditNoteRefunded(credit_note_id=note_id), asynchronous=False)

    def test_missing_note(self):
        with pytest.raises(NotFoundError):
            current_domain.process(MarkCreditNoteRefunded(credit_note_id="cn-missing"), asynchronous=False)


class TestStatisticsWithCredits:
    def test_credits_reduce_net_revenue(self, order_id):
        _issue(order_id, [{"product_id": "prod-book", "quantity": 1}])
        stats = revenue_statistics()
        assert stats.credit_note_count == 1
        assert stats.gross_revenue_ttc == 4540
        assert stats.credited_ttc == 2120
        assert stats.net_revenue_ttc == 2420
        assert stats.net_revenue_ht == 2000

    def test_net_revenue_never_negative(self, order_id):
        _issue(order_id, [{"product_id": "prod-mug", "quantity": 2}, {"product_id": "prod-book", "quantity": 1}])
        _issue(order_id, [{"product_id": "prod-book", "quantity": 1}], goodwill=True)
        stats = revenue_statistics()
        assert stats.credited_ttc > stats.gross_revenue_ttc
        assert stats.net_revenue_ttc == 0
        assert stats.net_revenue_ht == 0


class TestConcurrentIssuance:
    def _command(self, order_id, quantity):
        return IssueCreditNote(
            order_id=order_id,
            items=json.dumps([{"product_id": "prod-mug", "quantity": quantity}]),
            reason="Damaged on arrival",
            payment_method="card",
        )

    def test_parallel_requests_cannot_over_credit(self, order_id, monkeypatch):
        original = issuance.credited_quantities

        def slow_credited_quantities(order_id):
            # Widen the gap between reading earlier notes and writing the new one
            totals = original(order_id)
            time.sleep(0.05)
            return totals

        monkeypatch.setattr(issuance, "credited_quantities", slow_credited_quantities)

        locks = InProcessCartLocks(timeout=2.0)
        barrier = threading.Barrier(2)
        issued, rejected = [], []

        def clerk():
            with ordering.domain_context():
                barrier.wait()
                try:
                    issued.append(issue_credit_note(locks, self._command(order_id, 2)))
                except ValidationError:
                    rejected.append(True)

        threads = [threading.Thread(target=clerk) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(issued) == 1
        assert len(rejected) == 1
        assert credited_quantities(order_id)["prod-mug"] == 2
        assert len(credit_notes_for_order(order_id)) == 1
        assert len(locks) == 0

    def test_issuance_waits_for_the_order_lock(self, order_id):
        locks = InProcessCartLocks(timeout=0.05)
        with locks.hold(order_lock_key(order_id)):
            with pytest.raises(ConflictError):
                issue_credit_note(locks, self._command(order_id, 1))
        assert credit_notes_for_order(order_id) == []

    def test_other_orders_are_not_blocked(self, order_id):
        locks = InProcessCartLocks(timeout=0.05)
        with locks.hold(order_lock_key("ord-other")):
            note_id = issue_credit_note(locks, self._command(order_id, 1))
        assert load_credit_note(note_id).total_amount_ttc_cents == 1210
