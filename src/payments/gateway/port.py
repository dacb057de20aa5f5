"""Payment gateway port (abstract interface).

Defines the contract that payment gateway adapters implement. The ordering
domain only ever talks to this interface: it hands over priced line items
in minor units and later asks whether the resulting checkout session was
paid.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PaymentLineItem:
    """One line on the hosted payment page. ``price`` is in minor units (cents)."""

    name: str
    price: int
    quantity: int
    currency: str = "eur"
    description: str | None = None


@dataclass(frozen=True)
class CheckoutCustomer:
    email: str
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class CheckoutSessionResult:
    """Result of opening a hosted checkout session."""

    success: bool
    session_id: str | None = None
    payment_url: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class PaymentSession:
    """State of a checkout session as reported by the gateway."""

    session_id: str
    status: str  # "open", "paid" or "expired"
    amount_total: int
    currency: str
    payment_intent_id: str | None = None
    payment_method: str | None = None
    customer_email: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_session(
        self,
        items: list[PaymentLineItem],
        customer: CheckoutCustomer,
        metadata: dict,
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
    ) -> CheckoutSessionResult:
        """Open a hosted checkout session and return where to redirect the shopper."""
        ...

    @abstractmethod
    def retrieve_checkout_session(self, session_id: str) -> PaymentSession | None:
        """Fetch a checkout session, or ``None`` if the gateway does not know it."""
        ...
