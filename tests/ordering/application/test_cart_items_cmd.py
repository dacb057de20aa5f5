"""Application tests for session-keyed cart commands."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import CartStatus, ShoppingCart
from ordering.cart.checkout_details import RecordCheckoutDetails
from ordering.cart.expiry import ExpireCarts
from ordering.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItemQuantity, require_active_cart
from ordering.cart.lookup import active_cart, carts_for_session, latest_cart
from ordering.errors import NotFoundError
from protean import current_domain
from protean.exceptions import ValidationError


def _add(session_id="sess-001", product_id="prod-mug", quantity=1, **overrides):
    fields = {
        "session_id": session_id,
        "product_id": product_id,
        "name": "Ceramic Mug",
        "unit_price_ht_cents": 1000,
        "vat_rate": 21.0,
        "quantity": quantity,
    }
    fields.update(overrides)
    return current_domain.process(AddToCart(**fields), asynchronous=False)


def _load(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestAddToCartCommand:
    def test_opens_a_cart_for_the_session(self):
        cart_id = _add(quantity=2)
        cart = _load(cart_id)
        assert cart.session_id == "sess-001"
        assert cart.status == CartStatus.ACTIVE.value
        assert cart.total_ttc_cents == 2420

    def test_reuses_the_active_cart(self):
        first = _add()
        second = _add(product_id="prod-book", name="Cook Book", unit_price_ht_cents=2000, vat_rate=6.0)
        assert first == second

        cart = _load(first)
        assert len(cart.items) == 2
        assert cart.subtotal_ht_cents == 3000
        assert cart.breakdown() == [{"rate": "6.00", "amount": 120}, {"rate": "21.00", "amount": 210}]

    def test_sessions_have_separate_carts(self):
        assert _add(session_id="sess-a") != _add(session_id="sess-b")

    def test_zero_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            _add(quantity=0)

    def test_stale_cart_is_expired_and_replaced(self):
        stale_id = _add(ttl_hours=1)
        repo = current_domain.repository_for(ShoppingCart)
        stale = repo.get(stale_id)
        stale.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        repo.add(stale)

        fresh_id = _add()
        assert fresh_id != stale_id
        assert _load(stale_id).status == CartStatus.EXPIRED.value
        assert len(_load(fresh_id).items) == 1

    def test_persists_snapshot_fields(self):
        cart_id = _add(description="350 ml", image_url="https://img.example/mug.jpg")
        item = _load(cart_id).items[0]
        assert item.name == "Ceramic Mug"
        assert item.description == "350 ml"
        assert item.image_url == "https://img.example/mug.jpg"
        assert item.vat_rate == 21.0


class TestUpdateAndRemoveCommands:
    def test_update_quantity(self):
        cart_id = _add()
        current_domain.process(
            UpdateCartItemQuantity(session_id="sess-001", product_id="prod-mug", quantity=3),
            asynchronous=False,
        )
        assert _load(cart_id).total_ttc_cents == 3630

    def test_update_without_cart(self):
        with pytest.raises(NotFoundError):
            current_domain.process(
                UpdateCartItemQuantity(session_id="sess-none", product_id="prod-mug", quantity=3),
                asynchronous=False,
            )

    def test_remove_item(self):
        cart_id = _add()
        current_domain.process(RemoveFromCart(session_id="sess-001", product_id="prod-mug"), asynchronous=False)
        cart = _load(cart_id)
        assert len(cart.items) == 0
        assert cart.total_ttc_cents == 0

    def test_remove_missing_item(self):
        _add()
        with pytest.raises(NotFoundError):
            current_domain.process(RemoveFromCart(session_id="sess-001", product_id="prod-ghost"), asynchronous=False)

    def test_clear_cart(self):
        cart_id = _add()
        _add(product_id="prod-book", name="Cook Book", unit_price_ht_cents=2000, vat_rate=6.0)
        current_domain.process(ClearCart(session_id="sess-001"), asynchronous=False)
        cart = _load(cart_id)
        assert len(cart.items) == 0
        assert cart.vat_breakdown == "[]"
        assert cart.status == CartStatus.ACTIVE.value


class TestCheckoutDetailsCommand:
    def test_records_snapshots(self, customer_data, shipping_data):
        cart_id = _add()
        current_domain.process(
            RecordCheckoutDetails(
                session_id="sess-001",
                customer_id="cust-001",
                customer=json.dumps({"schema_version": 2, **customer_data}),
                shipping_address=json.dumps({"schema_version": 2, **shipping_data}),
            ),
            asynchronous=False,
        )
        cart = _load(cart_id)
        assert cart.customer.email == "jane@example.com"
        assert cart.shipping_address.city == "Brussels"
        assert cart.billing_address.city == "Brussels"
        assert cart.customer_id == "cust-001"


class TestCartLookups:
    def test_require_active_cart(self):
        with pytest.raises(NotFoundError):
            require_active_cart("sess-none")

    def test_latest_cart_includes_inactive(self):
        cart_id = _add()
        current_domain.process(ExpireCarts(as_of=datetime.now(UTC) + timedelta(days=2)), asynchronous=False)
        assert active_cart("sess-001") is None
        assert str(latest_cart("sess-001").id) == cart_id
        assert len(carts_for_session("sess-001")) == 1


class TestExpireCartsCommand:
    def test_expires_only_stale_carts(self):
        stale_id = _add(session_id="sess-old", ttl_hours=1)
        fresh_id = _add(session_id="sess-new", ttl_hours=48)

        expired = current_domain.process(
            ExpireCarts(as_of=datetime.now(UTC) + timedelta(hours=2)),
            asynchronous=False,
        )

        assert expired == 1
        assert _load(stale_id).status == CartStatus.EXPIRED.value
        assert _load(fresh_id).status == CartStatus.ACTIVE.value

    def test_nothing_to_expire(self):
        _add()
        assert current_domain.process(ExpireCarts(), asynchronous=False) == 0
