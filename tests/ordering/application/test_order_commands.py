"""Application tests for order placement, administration and statistics."""

import json

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.checkout.translation import order_items_from_cart
from ordering.errors import ConflictError, NotFoundError
from ordering.order.delivery import SetDeliveryStatus, UpdateOrderNotes
from ordering.order.placement import PlaceOrder
from ordering.order.queries import all_orders, load_order, order_for_payment_intent, orders_for_customer
from ordering.order.statistics import revenue_statistics
from protean import current_domain


def _place_order_command(cart, customer_data, shipping_data, payment_intent_id="pi_001", **overrides):
    fields = {
        "cart_id": str(cart.id),
        "customer_id": "cust-001",
        "payment_intent_id": payment_intent_id,
        "payment_method": "card",
        "customer": json.dumps({"schema_version": 2, **customer_data}),
        "shipping_address": json.dumps({"schema_version": 2, **shipping_data}),
        "items": json.dumps(order_items_from_cart(cart)),
        "subtotal_ht_cents": cart.subtotal_ht_cents,
        "tax_cents": cart.tax_cents,
        "total_ttc_cents": cart.total_ttc_cents,
        "vat_breakdown": cart.vat_breakdown,
    }
    fields.update(overrides)
    return PlaceOrder(**fields)


@pytest.fixture()
def cart(fill_cart):
    cart_id = fill_cart(
        "sess-001",
        ("prod-mug", "Ceramic Mug", 1000, 21.0, 2),
        ("prod-book", "Cook Book", 2000, 6.0, 1),
    )
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestPlaceOrderCommand:
    def test_persists_order_with_lines(self, cart, customer_data, shipping_data):
        order_id = current_domain.process(
            _place_order_command(cart, customer_data, shipping_data), asynchronous=False
        )
        order = load_order(order_id)
        assert len(order.items) == 2
        assert order.total_amount_ttc_cents == 4540
        assert order.customer.first_name == "Jane"
        assert order.billing_address == order.shipping_address

    def test_duplicate_payment_intent_is_a_conflict(self, cart, customer_data, shipping_data):
        current_domain.process(_place_order_command(cart, customer_data, shipping_data), asynchronous=False)
        with pytest.raises(ConflictError):
            current_domain.process(_place_order_command(cart, customer_data, shipping_data), asynchronous=False)
        assert len(all_orders()) == 1

    def test_accepts_legacy_snapshots(self, cart, customer_data, shipping_data):
        legacy_customer = json.dumps({"email": "old@example.com", "firstName": "Old", "lastName": "Timer"})
        order_id = current_domain.process(
            _place_order_command(cart, customer_data, shipping_data, customer=legacy_customer),
            asynchronous=False,
        )
        assert load_order(order_id).customer.full_name == "Old Timer"


class TestOrderQueries:
    def test_load_missing_order(self):
        with pytest.raises(NotFoundError):
            load_order("ord-missing")

    def test_lookup_by_payment_intent(self, cart, customer_data, shipping_data):
        order_id = current_domain.process(
            _place_order_command(cart, customer_data, shipping_data, payment_intent_id="pi_lookup"),
            asynchronous=False,
        )
        assert str(order_for_payment_intent("pi_lookup").id) == order_id
        assert order_for_payment_intent("pi_other") is None

    def test_orders_for_customer(self, place_paid_order):
        place_paid_order(session_id="sess-a", customer_id="cust-a")
        place_paid_order(session_id="sess-b", customer_id="cust-a")
        place_paid_order(session_id="sess-c", customer_id="cust-b")
        assert len(orders_for_customer("cust-a")) == 2
        assert len(orders_for_customer("cust-b")) == 1
        assert len(all_orders()) == 3


class TestDeliveryAndNotes:
    def test_mark_delivered(self, place_paid_order):
        order_id = place_paid_order().order_id
        changed = current_domain.process(SetDeliveryStatus(order_id=order_id, delivered=True), asynchronous=False)
        assert changed is True
        order = load_order(order_id)
        assert order.delivered is True
        assert order.delivered_at is not None

    def test_repeat_is_a_no_op(self, place_paid_order):
        order_id = place_paid_order().order_id
        current_domain.process(SetDeliveryStatus(order_id=order_id, delivered=True), asynchronous=False)
        changed = current_domain.process(SetDeliveryStatus(order_id=order_id, delivered=True), asynchronous=False)
        assert changed is False

    def test_missing_order(self):
        with pytest.raises(NotFoundError):
            current_domain.process(SetDeliveryStatus(order_id="ord-missing", delivered=True), asynchronous=False)

    def test_update_notes(self, place_paid_order):
        order_id = place_paid_order().order_id
        current_domain.process(UpdateOrderNotes(order_id=order_id, notes="Leave at reception"), asynchronous=False)
        assert load_order(order_id).notes == "Leave at reception"


class TestRevenueStatistics:
    def test_empty(self):
        stats = revenue_statistics()
        assert stats.order_count == 0
        assert stats.net_revenue_ttc == 0

    def test_sums_orders(self, place_paid_order):
        place_paid_order(session_id="sess-a")
        place_paid_order(session_id="sess-b")
        stats = revenue_statistics()
        assert stats.order_count == 2
        assert stats.gross_revenue_ht == 8000
        assert stats.gross_revenue_ttc == 9080
        assert stats.net_revenue_ttc == 9080
