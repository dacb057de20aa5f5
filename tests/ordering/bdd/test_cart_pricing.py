"""BDD tests for cart line pricing and totals."""

from ordering.pricing.money import from_cents, to_cents
from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/cart_pricing.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{qty:d} of product "{product_id}" at {price} excluding VAT with {rate}% VAT are added'))
def add_line(cart, qty, product_id, price, rate, error):
    try:
        cart.add_item(
            product_id=product_id,
            name=product_id,
            unit_price_ht_cents=to_cents(price),
            vat_rate=rate,
            quantity=qty,
        )
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the quantity of "{product_id}" is set to {qty:d}'))
def set_quantity(cart, product_id, qty, error):
    try:
        cart.update_item_quantity(product_id, qty)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the line for "{product_id}" is removed'))
def remove_line(cart, product_id):
    cart.remove_item(product_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart subtotal excluding VAT is {amount}"))
def subtotal_is(cart, amount):
    assert cart.subtotal_ht_cents == to_cents(amount)


@then(parsers.cfparse("the cart tax is {amount}"))
def tax_is(cart, amount):
    assert cart.tax_cents == to_cents(amount)


@then(parsers.cfparse("the cart total including VAT is {amount}"))
def total_is(cart, amount):
    assert cart.total_ttc_cents == to_cents(amount)


@then(parsers.cfparse('the VAT breakdown is "{expected}"'))
def breakdown_is(cart, expected):
    actual = ", ".join(f"{line['rate']}:{from_cents(line['amount'])}" for line in cart.breakdown())
    assert actual == expected


@then("the VAT breakdown is empty")
def breakdown_is_empty(cart):
    assert cart.breakdown() == []


@then(parsers.cfparse('the line for "{product_id}" costs {unit} each and {total} in total'))
def line_costs(cart, product_id, unit, total):
    item = cart.find_item(product_id)
    assert item.unit_price_ttc_cents == to_cents(unit)
    assert item.total_price_ttc_cents == to_cents(total)


@then(parsers.cfparse('the line for "{product_id}" has quantity {qty:d}'))
def line_quantity(cart, product_id, qty):
    assert cart.find_item(product_id).quantity == qty
