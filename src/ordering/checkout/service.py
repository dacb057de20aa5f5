"""Checkout orchestration: cart -> payment session -> order -> confirmation mail.

``start`` records who is buying, opens a hosted payment session for the
cart's lines and stores a snapshot of those lines against the session id.
``finalize`` runs once the gateway reports the session paid: it places the
order from that snapshot, never from the live cart, then clears the cart,
then sends the confirmation mail, strictly in that order. A checkout can be
finalized only once; a retry finds either a converted cart or an existing
order for the payment intent and is rejected with ``ConflictError``, as is a
session whose charged amount or currency differs from its snapshot.
"""

import json
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from notifications.channel.email_port import EmailPort
from notifications.templates import ORDER_CONFIRMATION, render_template
from ordering.cart.cart import CartStatus, ShoppingCart
from ordering.cart.checkout_details import RecordCheckoutDetails, RecordCheckoutSession
from ordering.cart.conversion import ConvertCart
from ordering.cart.items import require_active_cart
from ordering.cart.locking import CartLocks
from ordering.checkout.translation import (
    checkout_customer,
    checkout_snapshot,
    confirmation_email_data,
    payment_items_from_cart,
    require_checkout_ready,
)
from ordering.errors import ConflictError, NotFoundError, PaymentGatewayError
from ordering.order.placement import PlaceOrder
from ordering.order.queries import load_order, order_for_payment_intent
from ordering.shared.snapshots import AddressSnapshot, CustomerSnapshot, snapshot_json
from payments.gateway.port import PaymentGateway

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutStarted:
    cart_id: str
    payment_session_id: str
    payment_url: str
    amount_total_cents: int


@dataclass(frozen=True)
class CheckoutFinalized:
    order_id: str
    cart_id: str
    email_sent: bool


class CheckoutService:
    def __init__(self, gateway: PaymentGateway, mailer: EmailPort, cart_locks: CartLocks, currency: str = "eur"):
        self.gateway = gateway
        self.mailer = mailer
        self.cart_locks = cart_locks
        self.currency = currency

    # -------------------------------------------------------------------
    # Start
    # -------------------------------------------------------------------
    def start(
        self,
        cart_session_id,
        customer: dict,
        shipping_address: dict,
        success_url,
        cancel_url,
        billing_address: dict | None = None,
        use_same_billing_address=True,
        customer_id=None,
    ) -> CheckoutStarted:
        # Held until the snapshot is stored, so the lines charged are the lines recorded
        with self.cart_locks.hold(cart_session_id):
            cart = require_active_cart(cart_session_id)
            if not cart.items:
                raise ValidationError({"items": ["The cart is empty"]})

            current_domain.process(
                RecordCheckoutDetails(
                    session_id=cart_session_id,
                    customer_id=customer_id,
                    customer=snapshot_json(CustomerSnapshot(**customer)),
                    shipping_address=snapshot_json(AddressSnapshot(**shipping_address)),
                    billing_address=snapshot_json(AddressSnapshot(**billing_address)) if billing_address else None,
                    use_same_billing_address=use_same_billing_address,
                ),
                asynchronous=False,
            )
            cart = require_active_cart(cart_session_id)

            require_checkout_ready(cart)
            items = payment_items_from_cart(cart, currency=self.currency)
            result = self.gateway.create_checkout_session(
                items=items,
                customer=checkout_customer(cart.customer),
                metadata={
                    "cart_id": str(cart.id),
                    "cart_session_id": cart_session_id,
                    "customer_id": str(cart.customer_id or customer_id or ""),
                },
                success_url=success_url,
                cancel_url=cancel_url,
                idempotency_key=f"checkout-{cart.id}-{cart.updated_at.isoformat()}",
            )
            if not result.success:
                logger.error(
                    "Payment session creation failed",
                    cart_id=str(cart.id),
                    reason=result.failure_reason,
                )
                raise PaymentGatewayError(f"Could not open a payment session: {result.failure_reason}")

            current_domain.process(
                RecordCheckoutSession(
                    session_id=cart_session_id,
                    payment_session_id=result.session_id,
                    snapshot=json.dumps(checkout_snapshot(cart, result.session_id, currency=self.currency)),
                ),
                asynchronous=False,
            )

        logger.info(
            "Checkout started",
            cart_id=str(cart.id),
            payment_session_id=result.session_id,
            total_ttc_cents=cart.total_ttc_cents,
        )
        return CheckoutStarted(
            cart_id=str(cart.id),
            payment_session_id=result.session_id,
            payment_url=result.payment_url,
            amount_total_cents=sum(item.price * item.quantity for item in items),
        )

    # -------------------------------------------------------------------
    # Finalize
    # -------------------------------------------------------------------
    def finalize(self, payment_session_id) -> CheckoutFinalized:
        session = self.gateway.retrieve_checkout_session(payment_session_id)
        if session is None:
            raise NotFoundError(f"Payment session {payment_session_id} does not exist")
        if not session.is_paid:
            raise ValidationError({"payment": [f"Payment session {payment_session_id} is {session.status}, not paid"]})

        cart_id = session.metadata.get("cart_id")
        cart_session_id = session.metadata.get("cart_session_id")
        if not cart_id or not cart_session_id:
            raise ValidationError({"payment": ["Payment session does not reference a cart"]})

        with self.cart_locks.hold(cart_session_id):
            existing = order_for_payment_intent(session.payment_intent_id)
            if existing is not None:
                raise ConflictError(f"Checkout already finalized as order {existing.id}")

            try:
                cart = current_domain.repository_for(ShoppingCart).get(cart_id)
            except ObjectNotFoundError as exc:
                raise NotFoundError(f"Cart {cart_id} does not exist") from exc
            if CartStatus(cart.status) != CartStatus.ACTIVE:
                raise ConflictError(f"Cart {cart_id} is {cart.status}; it cannot be checked out again")

            snapshot = self._paid_snapshot(cart, session)
            order_id = current_domain.process(
                PlaceOrder(
                    cart_id=str(cart.id),
                    customer_id=session.metadata.get("customer_id") or cart.customer_id,
                    payment_intent_id=session.payment_intent_id,
                    payment_method=session.payment_method,
                    currency=snapshot["currency"],
                    customer=snapshot["customer"],
                    shipping_address=snapshot["shipping_address"],
                    billing_address=snapshot["billing_address"],
                    items=json.dumps(snapshot["items"]),
                    subtotal_ht_cents=snapshot["subtotal_ht_cents"],
                    tax_cents=snapshot["tax_cents"],
                    total_ttc_cents=snapshot["total_ttc_cents"],
                    vat_breakdown=snapshot["vat_breakdown"],
                ),
                asynchronous=False,
            )
            current_domain.process(ConvertCart(cart_id=str(cart.id), order_id=order_id), asynchronous=False)

        email_sent = self.send_confirmation(order_id)
        logger.info("Checkout finalized", order_id=order_id, cart_id=cart_id, email_sent=email_sent)
        return CheckoutFinalized(order_id=order_id, cart_id=cart_id, email_sent=email_sent)

    def _paid_snapshot(self, cart, session) -> dict:
        """The checkout snapshot ``session`` was opened for, checked against what was charged."""
        snapshot = cart.checkout_session(session.session_id)
        if snapshot is None:
            raise ConflictError(f"Payment session {session.session_id} was not opened for cart {cart.id}")

        currency = (session.currency or self.currency).lower()
        if session.amount_total != snapshot["total_ttc_cents"] or currency != snapshot["currency"].lower():
            logger.error(
                "Paid amount does not match checkout",
                cart_id=str(cart.id),
                payment_session_id=session.session_id,
                paid_cents=session.amount_total,
                paid_currency=currency,
                expected_cents=snapshot["total_ttc_cents"],
                expected_currency=snapshot["currency"],
            )
            raise ConflictError(
                f"Payment session {session.session_id} charged {session.amount_total} {currency}, "
                f"checkout expected {snapshot['total_ttc_cents']} {snapshot['currency']}"
            )
        return snapshot

    def send_confirmation(self, order_id) -> bool:
        """Send the confirmation mail. Failures are logged, never raised: the order stands."""
        try:
            order = load_order(order_id)
            message = render_template(ORDER_CONFIRMATION, confirmation_email_data(order))
            result = self.mailer.send_rendered(order.customer.email, message)
        except Exception:
            logger.exception("Order confirmation mail failed", order_id=order_id)
            return False

        if result.get("status") != "sent":
            logger.warning("Order confirmation mail not sent", order_id=order_id, error=result.get("error"))
            return False
        logger.info("Order confirmation mail sent", order_id=order_id, message_id=result.get("message_id"))
        return True
