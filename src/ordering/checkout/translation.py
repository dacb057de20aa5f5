"""Snapshot translator: one-way projections of a finalized cart or placed order.

None of these functions mutate their source or perform monetary arithmetic:
prices are copied as stored (integer cents) and only formatted for display.
"""

from protean.exceptions import ValidationError

from ordering.order.order import LINE_FIELDS
from ordering.pricing.money import from_cents, rate_label, to_rate
from ordering.shared.snapshots import snapshot_json
from payments.gateway.port import CheckoutCustomer, PaymentLineItem


def require_checkout_ready(cart):
    """Fail fast when a cart cannot become an order."""
    errors = {}
    if not cart.items:
        errors["items"] = ["The cart is empty"]
    if cart.customer is None or not cart.customer.email:
        errors["customer"] = ["Customer email is required"]
    if cart.shipping_address is None:
        errors["shipping_address"] = ["Shipping address is required"]
    if errors:
        raise ValidationError(errors)


def order_items_from_cart(cart) -> list[dict]:
    """Verbatim copies of the cart lines, in cart order."""
    items = []
    for item in cart.ordered_items():
        line = {field: getattr(item, field) for field in LINE_FIELDS}
        line["product_id"] = str(item.product_id)
        items.append(line)
    return items


def checkout_snapshot(cart, payment_session_id, currency="eur") -> dict:
    """Everything an order needs, frozen when the payment session opens."""
    return {
        "payment_session_id": str(payment_session_id),
        "currency": currency,
        "customer": snapshot_json(cart.customer),
        "shipping_address": snapshot_json(cart.shipping_address),
        "billing_address": snapshot_json(cart.billing_address),
        "items": order_items_from_cart(cart),
        "subtotal_ht_cents": cart.subtotal_ht_cents,
        "tax_cents": cart.tax_cents,
        "total_ttc_cents": cart.total_ttc_cents,
        "vat_breakdown": cart.vat_breakdown,
    }


def payment_items_from_cart(cart, currency="eur") -> list[PaymentLineItem]:
    """Gateway line items; ``price`` is the stored unit TTC in cents, unconverted."""
    return [
        PaymentLineItem(
            name=item.name,
            description=item.description or None,
            price=item.unit_price_ttc_cents,
            quantity=item.quantity,
            currency=currency,
        )
        for item in cart.ordered_items()
    ]


def checkout_customer(customer) -> CheckoutCustomer:
    return CheckoutCustomer(
        email=customer.email,
        name=customer.full_name or None,
        phone=customer.phone,
    )


def _address(snapshot):
    if snapshot is None:
        return None
    return {
        "address": snapshot.address,
        "postal_code": snapshot.postal_code,
        "city": snapshot.city,
        "country": snapshot.country,
    }


def confirmation_email_data(order) -> dict:
    """Display-oriented confirmation data for a placed order."""
    return {
        "order_id": str(order.id),
        "currency": order.currency,
        "customer": {
            "email": order.customer.email,
            "name": order.customer.full_name,
            "phone": order.customer.phone,
        },
        "shipping_address": _address(order.shipping_address),
        "billing_address": _address(order.billing_address),
        "items": [
            {
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": str(from_cents(item.unit_price_ttc_cents)),
                "total_price": str(from_cents(item.total_price_ttc_cents)),
                "vat_rate": rate_label(to_rate(item.vat_rate)),
            }
            for item in order.ordered_items()
        ],
        "totals": {
            "subtotal_ht": str(from_cents(order.total_amount_ht_cents)),
            "tax": str(from_cents(order.tax_cents)),
            "total_ttc": str(from_cents(order.total_amount_ttc_cents)),
        },
        "vat_breakdown": [
            {"rate": line["rate"], "amount": str(from_cents(line["amount"]))} for line in order.breakdown()
        ],
    }
