"""Cart aggregator: folds priced lines into totals and a per-rate VAT breakdown."""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ordering.pricing.line_item import LinePrice
from ordering.pricing.money import from_cents, rate_label, to_rate


@dataclass(frozen=True)
class VatLine:
    rate: Decimal
    amount: int


@dataclass(frozen=True)
class CartTotals:
    subtotal_ht: int = 0
    tax: int = 0
    total_ttc: int = 0
    vat_breakdown: tuple[VatLine, ...] = field(default_factory=tuple)

    @classmethod
    def from_stored(cls, subtotal_ht, tax, total_ttc, breakdown_json=None) -> "CartTotals":
        """Rebuild totals persisted on a cart, order or credit note without recomputing them."""
        return cls(
            subtotal_ht=subtotal_ht or 0,
            tax=tax or 0,
            total_ttc=total_ttc or 0,
            vat_breakdown=tuple(
                VatLine(rate=to_rate(line["rate"]), amount=line["amount"]) for line in parse_breakdown(breakdown_json)
            ),
        )

    def breakdown_json(self) -> str:
        """Serialized breakdown as stored on carts, orders and credit notes."""
        return json.dumps([{"rate": rate_label(line.rate), "amount": line.amount} for line in self.vat_breakdown])

    def as_display(self) -> dict:
        return {
            "subtotal_ht": from_cents(self.subtotal_ht),
            "tax": from_cents(self.tax),
            "total_ttc": from_cents(self.total_ttc),
            "vat_breakdown": [
                {"rate": rate_label(line.rate), "amount": from_cents(line.amount)} for line in self.vat_breakdown
            ],
        }


EMPTY_TOTALS = CartTotals()


def aggregate(lines: Iterable[LinePrice]) -> CartTotals:
    """Sum line totals in one pass and bucket VAT by distinct rate.

    Amounts are integer cents, so no rounding happens here and the
    breakdown always sums to ``total_ttc - subtotal_ht``.
    """
    subtotal_ht = 0
    total_ttc = 0
    by_rate: dict[Decimal, int] = {}

    for line in lines:
        subtotal_ht += line.total_price_ht
        total_ttc += line.total_price_ttc
        # Decimal("21") and Decimal("21.0") hash alike and share a bucket
        by_rate[line.vat_rate] = by_rate.get(line.vat_rate, 0) + line.vat_amount

    breakdown = tuple(VatLine(rate=rate, amount=amount) for rate, amount in sorted(by_rate.items()))
    return CartTotals(
        subtotal_ht=subtotal_ht,
        tax=total_ttc - subtotal_ht,
        total_ttc=total_ttc,
        vat_breakdown=breakdown,
    )


def parse_breakdown(raw: str | None) -> list[dict]:
    """Decode a stored breakdown into ``[{"rate": "21.00", "amount": 420}]``."""
    if not raw:
        return []
    return json.loads(raw)
