"""Line-item calculator: HT/TTC unit prices and totals for a single product line.

The unit price is rounded once, on conversion between HT and TTC. Totals are
exact integer products of the rounded unit price and the quantity, so a line
total never drifts from ``unit * quantity``.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean.exceptions import ValidationError

from ordering.errors import InvalidQuantityError
from ordering.pricing.money import add_vat, remove_vat, to_rate


@dataclass(frozen=True)
class LinePrice:
    """Priced product line. All amounts are integer cents."""

    quantity: int
    vat_rate: Decimal
    unit_price_ht: int
    unit_price_ttc: int
    total_price_ht: int
    total_price_ttc: int

    @property
    def vat_amount(self) -> int:
        return self.total_price_ttc - self.total_price_ht


def validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity)
    return quantity


def _validate_price(price, field_name: str) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        raise ValidationError({field_name: [f"Price must be an amount in cents, got {price!r}"]})
    if price < 0:
        raise ValidationError({field_name: ["Price cannot be negative"]})
    return price


def price_from_ht(unit_price_ht: int, quantity: int, vat_rate) -> LinePrice:
    """Price a line from its tax-exclusive unit price."""
    quantity = validate_quantity(quantity)
    rate = to_rate(vat_rate)
    unit_ht = _validate_price(unit_price_ht, "unit_price_ht")
    unit_ttc = add_vat(unit_ht, rate)
    return LinePrice(
        quantity=quantity,
        vat_rate=rate,
        unit_price_ht=unit_ht,
        unit_price_ttc=unit_ttc,
        total_price_ht=unit_ht * quantity,
        total_price_ttc=unit_ttc * quantity,
    )


def price_from_ttc(unit_price_ttc: int, quantity: int, vat_rate) -> LinePrice:
    """Price a line from its tax-inclusive unit price."""
    quantity = validate_quantity(quantity)
    rate = to_rate(vat_rate)
    unit_ttc = _validate_price(unit_price_ttc, "unit_price_ttc")
    unit_ht = remove_vat(unit_ttc, rate)
    return LinePrice(
        quantity=quantity,
        vat_rate=rate,
        unit_price_ht=unit_ht,
        unit_price_ttc=unit_ttc,
        total_price_ht=unit_ht * quantity,
        total_price_ttc=unit_ttc * quantity,
    )


def reprice(line: LinePrice, quantity: int) -> LinePrice:
    """Same unit prices, new quantity."""
    quantity = validate_quantity(quantity)
    return LinePrice(
        quantity=quantity,
        vat_rate=line.vat_rate,
        unit_price_ht=line.unit_price_ht,
        unit_price_ttc=line.unit_price_ttc,
        total_price_ht=line.unit_price_ht * quantity,
        total_price_ttc=line.unit_price_ttc * quantity,
    )
