"""Revenue statistics across orders and credit notes."""

from dataclasses import dataclass

from protean.utils.globals import current_domain

from ordering.credit_note.credit_note import CreditNote
from ordering.order.order import Order


@dataclass(frozen=True)
class RevenueStatistics:
    order_count: int
    credit_note_count: int
    gross_revenue_ht: int
    gross_revenue_ttc: int
    credited_ht: int
    credited_ttc: int

    @property
    def net_revenue_ht(self) -> int:
        return max(self.gross_revenue_ht - self.credited_ht, 0)

    @property
    def net_revenue_ttc(self) -> int:
        return max(self.gross_revenue_ttc - self.credited_ttc, 0)


def revenue_statistics() -> RevenueStatistics:
    """Gross order revenue, credited amounts and net revenue (never below zero)."""
    orders = current_domain.repository_for(Order)._dao.query.all().items
    credit_notes = current_domain.repository_for(CreditNote)._dao.query.all().items

    return RevenueStatistics(
        order_count=len(orders),
        credit_note_count=len(credit_notes),
        gross_revenue_ht=sum(order.total_amount_ht_cents or 0 for order in orders),
        gross_revenue_ttc=sum(order.total_amount_ttc_cents or 0 for order in orders),
        credited_ht=sum(note.total_amount_ht_cents or 0 for note in credit_notes),
        credited_ttc=sum(note.total_amount_ttc_cents or 0 for note in credit_notes),
    )
