"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Monetary amounts are exposed as two-decimal
values, which serialize to JSON strings such as ``"12.10"``.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CustomerSchema(BaseModel):
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class AddressSchema(BaseModel):
    address: str
    postal_code: str
    city: str
    country: str


class VatLineSchema(BaseModel):
    rate: str
    amount: Decimal


class LineItemSchema(BaseModel):
    product_id: str
    name: str
    description: str | None = None
    image_url: str | None = None
    quantity: int
    unit_price_ht: Decimal
    unit_price_ttc: Decimal
    total_price_ht: Decimal
    total_price_ttc: Decimal
    vat_rate: str


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = 1
    customer_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "42",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CheckoutDetailsRequest(BaseModel):
    customer: CustomerSchema
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    use_same_billing_address: bool = True
    customer_id: str | None = None


class CartResponse(BaseModel):
    cart_id: str
    session_id: str
    status: str
    items: list[LineItemSchema]
    item_count: int
    subtotal_ht: Decimal
    tax: Decimal
    total_ttc: Decimal
    vat_breakdown: list[VatLineSchema]
    customer: CustomerSchema | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    expires_at: datetime | None = None


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class StartCheckoutRequest(CheckoutDetailsRequest):
    cart_session_id: str
    success_url: str
    cancel_url: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_session_id": "sess-8f14e45f",
                    "customer": {
                        "email": "jane@example.com",
                        "first_name": "Jane",
                        "last_name": "Doe",
                        "phone": "+32 470 00 00 00",
                    },
                    "shipping_address": {
                        "address": "Rue de la Loi 16",
                        "postal_code": "1000",
                        "city": "Brussels",
                        "country": "Belgium",
                    },
                    "use_same_billing_address": True,
                    "success_url": "https://shop.example/checkout/success",
                    "cancel_url": "https://shop.example/cart",
                }
            ]
        }
    }


class StartCheckoutResponse(BaseModel):
    cart_id: str
    payment_session_id: str
    payment_url: str
    amount_total_cents: int


class FinalizeCheckoutRequest(BaseModel):
    payment_session_id: str


class FinalizeCheckoutResponse(BaseModel):
    order_id: str
    cart_id: str
    email_sent: bool


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    order_id: str
    cart_id: str
    customer_id: str | None = None
    customer: CustomerSchema
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    items: list[LineItemSchema]
    total_amount_ht: Decimal
    tax: Decimal
    total_amount_ttc: Decimal
    vat_breakdown: list[VatLineSchema]
    currency: str
    payment_method: str | None = None
    payment_intent_id: str
    delivered: bool
    delivered_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None


class DeliveryStatusRequest(BaseModel):
    delivered: bool


class OrderNotesRequest(BaseModel):
    notes: str | None = None


class RevenueStatisticsResponse(BaseModel):
    order_count: int
    credit_note_count: int
    gross_revenue_ht: Decimal
    gross_revenue_ttc: Decimal
    credited_ht: Decimal
    credited_ttc: Decimal
    net_revenue_ht: Decimal
    net_revenue_ttc: Decimal


# ---------------------------------------------------------------------------
# Credit notes
# ---------------------------------------------------------------------------
class CreditNoteLineRequest(BaseModel):
    product_id: str
    quantity: int


class IssueCreditNoteRequest(BaseModel):
    items: list[CreditNoteLineRequest]
    reason: str
    payment_method: str
    description: str | None = None
    notes: str | None = None
    goodwill: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "42", "quantity": 1}],
                    "reason": "Damaged on arrival",
                    "payment_method": "card",
                }
            ]
        }
    }


class CreditNoteIdResponse(BaseModel):
    credit_note_id: str


class CreditNoteItemSchema(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price_ht: Decimal
    unit_price_ttc: Decimal
    total_price_ht: Decimal
    total_price_ttc: Decimal
    vat_rate: str


class CreditNoteResponse(BaseModel):
    credit_note_id: str
    order_id: str
    customer_id: str | None = None
    items: list[CreditNoteItemSchema]
    total_amount_ht: Decimal
    tax: Decimal
    total_amount_ttc: Decimal
    vat_breakdown: list[VatLineSchema]
    reason: str
    description: str | None = None
    payment_method: str
    status: str
    goodwill: bool
    notes: str | None = None
    created_at: datetime | None = None
    refunded_at: datetime | None = None


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
class ExpireCartsResponse(BaseModel):
    expired_count: int
