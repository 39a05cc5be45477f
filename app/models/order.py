# app/models/order.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.core.time_utils import utcnow


class Order(SQLModel, table=True):
    """
    Customer order.

    Monetary fields are fixed at creation. The shipping address is
    embedded (snapshot at checkout) and is only ever rewritten when the
    owning account is deleted.

    status:         pending | confirmed | processing | shipped |
                    delivered | cancelled | refunded
    payment_status: pending | paid | failed | refunded

    Every write of `status` goes together with one OrderTimelineEntry
    insert in the same commit (see OrderRepository.set_status).
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        max_length=32,
        unique=True,
        index=True,
        description="Human-facing order number used for public tracking",
    )

    # Nulled only when the account is deleted (order kept for records)
    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    # Shipping address snapshot
    shipping_name: str
    shipping_phone: str
    shipping_email: str | None = None
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_pincode: str
    shipping_landmark: str | None = None

    subtotal: float = Field(ge=0)
    shipping_cost: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    tax: float = Field(default=0, ge=0)
    total: float = Field(ge=0)

    coupon_code: str | None = None

    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    payment_method: str = Field(default="razorpay")

    payment_status: str = Field(
        default="pending",
        index=True,
    )

    # True while the item quantities are held out of product stock
    stock_reserved: bool = Field(default=False)

    # Payment details, populated once a payment is verified
    gateway_order_id: str | None = Field(default=None, index=True)
    gateway_payment_id: str | None = Field(default=None, index=True)
    gateway_signature: str | None = None
    payment_details_method: str | None = None
    paid_at: datetime | None = None

    # Tracking, fields set independently
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    tracking_estimated_delivery: datetime | None = None

    notes: str | None = None
    admin_notes: str | None = None

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    name/slug/image/price are snapshots taken at checkout and are never
    re-derived from the live product.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str
    slug: str
    image: str = ""

    price: float = Field(description="Unit price at time of order")

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    variant_name: str | None = None
    variant_option: str | None = None
    customization: str | None = None


class OrderTimelineEntry(SQLModel, table=True):
    """
    Append-only audit trail of an order's status changes.
    """

    __tablename__ = "order_timeline"

    id: int | None = Field(default=None, primary_key=True)

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: str
    message: str

    timestamp: datetime = Field(default_factory=utcnow)
