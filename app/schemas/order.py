# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import Pagination

OrderStatus = Literal[
    "pending",
    "confirmed",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
PaymentMethod = Literal[
    "cod",
    "razorpay",
    "upi",
    "card",
    "netbanking",
    "wallet",
    "stripe",
    "pay_later",
]


def _strip_or_none(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


# -------- Checkout payloads --------


class ShippingAddress(SQLModel):
    """
    Shipping address snapshot captured at checkout.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    phone: str = Field(max_length=20)
    address: str
    city: str
    state: str
    pincode: str = Field(max_length=10)
    email: EmailStr | None = None
    landmark: str | None = None

    @field_validator("name", "phone", "address", "city", "state", "pincode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("landmark")
    @classmethod
    def normalize_landmark(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class VariantSelection(SQLModel):
    name: str
    option: str


class OrderItemCreate(SQLModel):
    """
    One cart line. Any price sent by the client is ignored; the live
    product price is snapshotted instead.
    """

    product_id: uuid.UUID
    quantity: int = Field(gt=0, le=100)
    variant: VariantSelection | None = None
    customization: str | None = Field(default=None, max_length=500)


class OrderCreate(SQLModel):
    """
    Payload for placing an order from a cart snapshot.

    Backend derives:
      - user_id from token
      - status = 'pending', payment_status = 'pending'
      - item snapshots and all monetary totals
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemCreate]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = "razorpay"
    coupon_code: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("coupon_code", "notes")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class OrderAction(SQLModel):
    """
    Customer action on an order. Only "cancel" is supported.
    """

    action: str
    reason: str | None = Field(default=None, max_length=500)


class AdminOrderUpdate(SQLModel):
    """
    Admin payload to update an order. Every field is optional.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)
    admin_notes: str | None = None
    send_email: bool = True

    @field_validator("tracking_number", "tracking_url", "carrier", "notes")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


# -------- Read models --------


class ShippingAddressRead(SQLModel):
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    email: str | None = None
    landmark: str | None = None


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    slug: str
    image: str
    price: float
    quantity: int
    variant: VariantSelection | None = None
    customization: str | None = None
    line_total: float


class TimelineEntryRead(SQLModel):
    status: str
    message: str
    timestamp: datetime


class TrackingRead(SQLModel):
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None


class PaymentDetailsRead(SQLModel):
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    gateway_signature: str | None = None
    method: str | None = None
    paid_at: datetime | None = None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: str
    subtotal: float
    shipping_cost: float
    discount: float
    tax: float
    total: float
    coupon_code: str | None = None
    created_at: datetime


class OrderDetailRead(OrderRead):
    """
    Full order view including items, address, tracking and timeline.
    """

    items: list[OrderItemRead]
    shipping_address: ShippingAddressRead
    tracking: TrackingRead | None = None
    payment_details: PaymentDetailsRead | None = None
    timeline: list[TimelineEntryRead]
    notes: str | None = None
    admin_notes: str | None = None
    updated_at: datetime


class AdminOrderList(SQLModel):
    orders: list[OrderRead]
    pagination: Pagination


# -------- Public tracking --------


class OrderTrackingRead(SQLModel):
    """
    Reduced, unauthenticated view of an order. No PII beyond the
    customer's first name and city.
    """

    order_number: str
    status: str
    payment_status: str
    customer_name: str
    city: str | None
    order_date: datetime
    tracking: TrackingRead | None = None
    timeline: list[TimelineEntryRead]
    estimated_delivery: datetime | None = None


# -------- Invoice --------


class InvoiceCompany(SQLModel):
    name: str
    address: str
    phone: str
    email: str
    gstin: str


class InvoiceCustomer(SQLModel):
    name: str
    phone: str
    address: str


class InvoiceLine(SQLModel):
    name: str
    quantity: int
    price: float
    total: float
    variant: VariantSelection | None = None


class InvoiceRead(SQLModel):
    invoice_number: str
    invoice_date: datetime
    company: InvoiceCompany
    customer: InvoiceCustomer
    order_number: str
    order_date: datetime
    payment_method: str
    payment_status: str
    items: list[InvoiceLine]
    subtotal: float
    shipping: float
    discount: float
    tax: float
    total: float
