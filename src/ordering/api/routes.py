"""FastAPI routes for the Ordering domain: carts, checkout, orders and credit notes."""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from ordering.api.dependencies import get_container
from ordering.api.schemas import (
    AddCartItemRequest,
    CartResponse,
    CheckoutDetailsRequest,
    CreditNoteIdResponse,
    CreditNoteResponse,
    DeliveryStatusRequest,
    ExpireCartsResponse,
    FinalizeCheckoutRequest,
    FinalizeCheckoutResponse,
    IssueCreditNoteRequest,
    OrderNotesRequest,
    OrderResponse,
    RevenueStatisticsResponse,
    StartCheckoutRequest,
    StartCheckoutResponse,
    StatusResponse,
    UpdateCartItemRequest,
)
from ordering.cart.cart import ShoppingCart
from ordering.cart.checkout_details import RecordCheckoutDetails
from ordering.cart.expiry import ExpireCarts
from ordering.cart.items import (
    AddToCart,
    ClearCart,
    RemoveFromCart,
    UpdateCartItemQuantity,
    require_active_cart,
)
from ordering.cart.locking import process_cart_command
from ordering.credit_note.issuance import (
    IssueCreditNote,
    MarkCreditNoteRefunded,
    credit_notes_for_order,
    issue_credit_note,
    load_credit_note,
)
from ordering.errors import NotFoundError
from ordering.order.delivery import SetDeliveryStatus, UpdateOrderNotes
from ordering.order.queries import all_orders, load_order, orders_for_customer
from ordering.order.statistics import revenue_statistics
from ordering.pricing.money import from_cents, rate_label, to_cents, to_rate
from ordering.shared.snapshots import AddressSnapshot, CustomerSnapshot, snapshot_json


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------
def _customer(snapshot):
    if snapshot is None:
        return None
    return {
        "email": snapshot.email,
        "first_name": snapshot.first_name,
        "last_name": snapshot.last_name,
        "phone": snapshot.phone,
    }


def _address(snapshot):
    if snapshot is None:
        return None
    return {
        "address": snapshot.address,
        "postal_code": snapshot.postal_code,
        "city": snapshot.city,
        "country": snapshot.country,
    }


def _line(item, with_media=True):
    line = {
        "product_id": str(item.product_id),
        "name": item.name,
        "quantity": item.quantity,
        "unit_price_ht": from_cents(item.unit_price_ht_cents),
        "unit_price_ttc": from_cents(item.unit_price_ttc_cents),
        "total_price_ht": from_cents(item.total_price_ht_cents),
        "total_price_ttc": from_cents(item.total_price_ttc_cents),
        "vat_rate": rate_label(to_rate(item.vat_rate)),
    }
    if with_media:
        line["description"] = item.description
        line["image_url"] = item.image_url
    return line


def _breakdown(aggregate):
    return [{"rate": line["rate"], "amount": from_cents(line["amount"])} for line in aggregate.breakdown()]


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        session_id=cart.session_id,
        status=cart.status,
        items=[_line(item) for item in cart.ordered_items()],
        item_count=cart.item_count,
        subtotal_ht=from_cents(cart.subtotal_ht_cents),
        tax=from_cents(cart.tax_cents),
        total_ttc=from_cents(cart.total_ttc_cents),
        vat_breakdown=_breakdown(cart),
        customer=_customer(cart.customer),
        shipping_address=_address(cart.shipping_address),
        billing_address=_address(cart.billing_address),
        expires_at=cart.expires_at,
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        cart_id=str(order.cart_id),
        customer_id=str(order.customer_id) if order.customer_id else None,
        customer=_customer(order.customer),
        shipping_address=_address(order.shipping_address),
        billing_address=_address(order.billing_address),
        items=[_line(item) for item in order.ordered_items()],
        total_amount_ht=from_cents(order.total_amount_ht_cents),
        tax=from_cents(order.tax_cents),
        total_amount_ttc=from_cents(order.total_amount_ttc_cents),
        vat_breakdown=_breakdown(order),
        currency=order.currency,
        payment_method=order.payment_method,
        payment_intent_id=order.payment_intent_id,
        delivered=bool(order.delivered),
        delivered_at=order.delivered_at,
        notes=order.notes,
        created_at=order.created_at,
    )


def _credit_note_response(credit_note) -> CreditNoteResponse:
    return CreditNoteResponse(
        credit_note_id=str(credit_note.id),
        order_id=str(credit_note.order_id),
        customer_id=str(credit_note.customer_id) if credit_note.customer_id else None,
        items=[_line(item, with_media=False) for item in credit_note.items],
        total_amount_ht=from_cents(credit_note.total_amount_ht_cents),
        tax=from_cents(credit_note.tax_cents),
        total_amount_ttc=from_cents(credit_note.total_amount_ttc_cents),
        vat_breakdown=_breakdown(credit_note),
        reason=credit_note.reason,
        description=credit_note.description,
        payment_method=credit_note.payment_method,
        status=credit_note.status,
        goodwill=bool(credit_note.goodwill),
        notes=credit_note.notes,
        created_at=credit_note.created_at,
        refunded_at=credit_note.refunded_at,
    )


def _load_cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{session_id}", response_model=CartResponse)
async def get_cart(session_id: str) -> CartResponse:
    return _cart_response(require_active_cart(session_id))


@cart_router.post("/{session_id}/items", response_model=CartResponse)
async def add_cart_item(session_id: str, body: AddCartItemRequest, container=Depends(get_container)) -> CartResponse:
    """Resolve the product in the catalogue and add it to the session's cart.

    The catalogue is consulted only here; name, price and VAT rate are
    snapshotted onto the cart line.
    """
    product = container.catalogue.get_product(body.product_id)
    if product is None or not product.is_active:
        raise NotFoundError(f"Product {body.product_id} is not available")

    command = AddToCart(
        session_id=session_id,
        customer_id=body.customer_id,
        product_id=product.id,
        name=product.name,
        description=product.description,
        image_url=product.image_url,
        unit_price_ht_cents=to_cents(product.price_ht),
        vat_rate=float(to_rate(product.vat_rate)),
        quantity=body.quantity,
        ttl_hours=container.settings.cart_ttl_hours,
    )
    cart_id = process_cart_command(container.cart_locks, session_id, command)
    return _cart_response(_load_cart(cart_id))


@cart_router.put("/{session_id}/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    session_id: str, product_id: str, body: UpdateCartItemRequest, container=Depends(get_container)
) -> CartResponse:
    command = UpdateCartItemQuantity(
        session_id=session_id,
        product_id=product_id,
        quantity=body.quantity,
    )
    cart_id = process_cart_command(container.cart_locks, session_id, command)
    return _cart_response(_load_cart(cart_id))


@cart_router.delete("/{session_id}/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(session_id: str, product_id: str, container=Depends(get_container)) -> CartResponse:
    command = RemoveFromCart(session_id=session_id, product_id=product_id)
    cart_id = process_cart_command(container.cart_locks, session_id, command)
    return _cart_response(_load_cart(cart_id))


@cart_router.delete("/{session_id}", response_model=CartResponse)
async def clear_cart(session_id: str, container=Depends(get_container)) -> CartResponse:
    cart_id = process_cart_command(container.cart_locks, session_id, ClearCart(session_id=session_id))
    return _cart_response(_load_cart(cart_id))


@cart_router.put("/{session_id}/checkout-details", response_model=CartResponse)
async def record_checkout_details(
    session_id: str, body: CheckoutDetailsRequest, container=Depends(get_container)
) -> CartResponse:
    billing = body.billing_address
    command = RecordCheckoutDetails(
        session_id=session_id,
        customer_id=body.customer_id,
        customer=snapshot_json(CustomerSnapshot(**body.customer.model_dump())),
        shipping_address=snapshot_json(AddressSnapshot(**body.shipping_address.model_dump())),
        billing_address=snapshot_json(AddressSnapshot(**billing.model_dump())) if billing else None,
        use_same_billing_address=body.use_same_billing_address,
    )
    cart_id = process_cart_command(container.cart_locks, session_id, command)
    return _cart_response(_load_cart(cart_id))


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/start", status_code=201, response_model=StartCheckoutResponse)
async def start_checkout(body: StartCheckoutRequest, container=Depends(get_container)) -> StartCheckoutResponse:
    started = container.checkout.start(
        cart_session_id=body.cart_session_id,
        customer=body.customer.model_dump(),
        shipping_address=body.shipping_address.model_dump(),
        billing_address=body.billing_address.model_dump() if body.billing_address else None,
        use_same_billing_address=body.use_same_billing_address,
        customer_id=body.customer_id,
        success_url=body.success_url,
        cancel_url=body.cancel_url,
    )
    return StartCheckoutResponse(
        cart_id=started.cart_id,
        payment_session_id=started.payment_session_id,
        payment_url=started.payment_url,
        amount_total_cents=started.amount_total_cents,
    )


@checkout_router.post("/finalize", status_code=201, response_model=FinalizeCheckoutResponse)
async def finalize_checkout(body: FinalizeCheckoutRequest, container=Depends(get_container)) -> FinalizeCheckoutResponse:
    finalized = container.checkout.finalize(body.payment_session_id)
    return FinalizeCheckoutResponse(
        order_id=finalized.order_id,
        cart_id=finalized.cart_id,
        email_sent=finalized.email_sent,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(customer_id: str | None = None) -> list[OrderResponse]:
    orders = orders_for_customer(customer_id) if customer_id else all_orders()
    return [_order_response(order) for order in sorted(orders, key=lambda o: o.created_at, reverse=True)]


@order_router.get("/statistics", response_model=RevenueStatisticsResponse)
async def get_revenue_statistics() -> RevenueStatisticsResponse:
    stats = revenue_statistics()
    return RevenueStatisticsResponse(
        order_count=stats.order_count,
        credit_note_count=stats.credit_note_count,
        gross_revenue_ht=from_cents(stats.gross_revenue_ht),
        gross_revenue_ttc=from_cents(stats.gross_revenue_ttc),
        credited_ht=from_cents(stats.credited_ht),
        credited_ttc=from_cents(stats.credited_ttc),
        net_revenue_ht=from_cents(stats.net_revenue_ht),
        net_revenue_ttc=from_cents(stats.net_revenue_ttc),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(load_order(order_id))


@order_router.put("/{order_id}/delivery", response_model=OrderResponse)
async def set_delivery_status(order_id: str, body: DeliveryStatusRequest) -> OrderResponse:
    current_domain.process(SetDeliveryStatus(order_id=order_id, delivered=body.delivered), asynchronous=False)
    return _order_response(load_order(order_id))


@order_router.put("/{order_id}/notes", response_model=StatusResponse)
async def update_order_notes(order_id: str, body: OrderNotesRequest) -> StatusResponse:
    current_domain.process(UpdateOrderNotes(order_id=order_id, notes=body.notes), asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/credit-notes", status_code=201, response_model=CreditNoteIdResponse)
async def create_credit_note(
    order_id: str, body: IssueCreditNoteRequest, container=Depends(get_container)
) -> CreditNoteIdResponse:
    command = IssueCreditNote(
        order_id=order_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        reason=body.reason,
        payment_method=body.payment_method,
        description=body.description,
        notes=body.notes,
        goodwill=body.goodwill,
    )
    credit_note_id = issue_credit_note(container.cart_locks, command)
    return CreditNoteIdResponse(credit_note_id=credit_note_id)


@order_router.get("/{order_id}/credit-notes", response_model=list[CreditNoteResponse])
async def list_order_credit_notes(order_id: str) -> list[CreditNoteResponse]:
    load_order(order_id)
    return [_credit_note_response(note) for note in credit_notes_for_order(order_id)]


# ---------------------------------------------------------------------------
# Credit Note Router
# ---------------------------------------------------------------------------
credit_note_router = APIRouter(prefix="/credit-notes", tags=["credit-notes"])


@credit_note_router.get("/{credit_note_id}", response_model=CreditNoteResponse)
async def get_credit_note(credit_note_id: str) -> CreditNoteResponse:
    return _credit_note_response(load_credit_note(credit_note_id))


@credit_note_router.put("/{credit_note_id}/refund", response_model=CreditNoteResponse)
async def refund_credit_note(credit_note_id: str) -> CreditNoteResponse:
    current_domain.process(MarkCreditNoteRefunded(credit_note_id=credit_note_id), asynchronous=False)
    return _credit_note_response(load_credit_note(credit_note_id))


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/expire-carts", response_model=ExpireCartsResponse)
async def expire_carts() -> ExpireCartsResponse:
    expired_count = current_domain.process(ExpireCarts(), asynchronous=False)
    return ExpireCartsResponse(expired_count=expired_count or 0)
