"""Shared BDD fixtures and step definitions for cart pricing."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.pricing.money import to_cents
from pytest_bdd import given, parsers, then


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@given(parsers.cfparse('an empty cart for session "{session_id}"'), target_fixture="cart")
def empty_cart(session_id):
    return ShoppingCart.create(session_id=session_id)


@given(
    parsers.cfparse(
        '{qty:d} of product "{product_id}" at {price} excluding VAT with {rate}% VAT are in the cart'
    )
)
def cart_with_line(cart, qty, product_id, price, rate):
    cart.add_item(
        product_id=product_id,
        name=product_id,
        unit_price_ht_cents=to_cents(price),
        vat_rate=rate,
        quantity=qty,
    )


@then("the change is rejected")
def change_rejected(error):
    assert error["exc"] is not None


@then(parsers.cfparse("the cart has {count:d} line"))
def cart_has_one_line(cart, count):
    assert len(cart.items) == count


@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_n_lines(cart, count):
    assert len(cart.items) == count
