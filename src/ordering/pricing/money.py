"""Minor-unit money helpers.

Amounts are integers counted in cents. Decimal inputs are converted exactly
once on entry and never pass through float arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

from ordering.errors import InvalidVatRateError

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 2.675 as 2.675 instead of 2.67499999...
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round a Decimal amount of cents to the nearest cent, halves away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_cents(amount) -> int:
    """Convert a decimal currency amount (``"19.99"``, ``19.99``) to integer cents."""
    try:
        value = _as_decimal(amount)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError({"amount": [f"Not a monetary amount: {amount!r}"]}) from exc
    if not value.is_finite():
        raise ValidationError({"amount": [f"Not a monetary amount: {amount!r}"]})
    return round_half_up(value * HUNDRED)


def from_cents(cents: int) -> Decimal:
    """Render integer cents as a two-decimal currency amount."""
    return (Decimal(cents) / HUNDRED).quantize(CENT)


def to_rate(vat_rate) -> Decimal:
    """Validate a VAT percentage and return it as a Decimal."""
    if isinstance(vat_rate, bool):
        raise InvalidVatRateError(vat_rate)
    try:
        rate = _as_decimal(vat_rate)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidVatRateError(vat_rate) from exc
    if not rate.is_finite() or rate < 0 or rate > HUNDRED:
        raise InvalidVatRateError(vat_rate)
    return rate


def rate_label(rate: Decimal) -> str:
    """Stable textual form of a rate, used as the breakdown key (``"21.00"``)."""
    return str(rate.quantize(CENT))


def add_vat(price_ht: int, rate: Decimal) -> int:
    """Tax-inclusive cents for a tax-exclusive price."""
    return round_half_up(Decimal(price_ht) * (HUNDRED + rate) / HUNDRED)


def remove_vat(price_ttc: int, rate: Decimal) -> int:
    """Tax-exclusive cents for a tax-inclusive price."""
    return round_half_up(Decimal(price_ttc) * HUNDRED / (HUNDRED + rate))
