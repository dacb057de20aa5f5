"""Configurable fake payment gateway for development and testing.

This adapter simulates a hosted-checkout gateway without any external
calls. It can be configured at runtime to refuse new sessions, and a test
(or a developer poking the API) completes a payment with
``complete_payment``, which is what a shopper paying on the hosted page
would do.
"""

from uuid import uuid4

from payments.gateway.port import (
    CheckoutCustomer,
    CheckoutSessionResult,
    PaymentGateway,
    PaymentLineItem,
    PaymentSession,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, base_url: str = "https://pay.example.test") -> None:
        self.base_url = base_url.rstrip("/")
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.sessions: dict[str, PaymentSession] = {}
        self._by_idempotency_key: dict[str, str] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_session(
        self,
        items: list[PaymentLineItem],
        customer: CheckoutCustomer,
        metadata: dict,
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
    ) -> CheckoutSessionResult:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "items": list(items),
                "customer": customer,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
                "idempotency_key": idempotency_key,
            }
        )

        if not self.should_succeed:
            return CheckoutSessionResult(success=False, failure_reason=self.failure_reason)

        session_id = self._by_idempotency_key.get(idempotency_key)
        if session_id is None:
            session_id = f"cs_fake_{uuid4().hex[:16]}"
            self._by_idempotency_key[idempotency_key] = session_id
            self.sessions[session_id] = PaymentSession(
                session_id=session_id,
                status="open",
                amount_total=sum(item.price * item.quantity for item in items),
                currency=items[0].currency if items else "eur",
                customer_email=customer.email,
                metadata=dict(metadata),
            )

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            payment_url=f"{self.base_url}/checkout/{session_id}",
        )

    def retrieve_checkout_session(self, session_id: str) -> PaymentSession | None:
        self.calls.append({"method": "retrieve_checkout_session", "session_id": session_id})
        return self.sessions.get(session_id)

    def complete_payment(self, session_id: str, payment_method: str = "card") -> PaymentSession:
        """Simulate the shopper paying on the hosted page."""
        session = self.sessions[session_id]
        paid = PaymentSession(
            session_id=session.session_id,
            status="paid",
            amount_total=session.amount_total,
            currency=session.currency,
            payment_intent_id=f"pi_fake_{uuid4().hex[:16]}",
            payment_method=payment_method,
            customer_email=session.customer_email,
            metadata=session.metadata,
        )
        self.sessions[session_id] = paid
        return paid
