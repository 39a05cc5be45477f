# app/schemas/payment.py
import uuid

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class PaymentOrderCreate(SQLModel):
    """
    Request to open a gateway order for an amount in rupees.

    `order_id` optionally links the gateway order to one of the caller's
    orders so that webhooks can find it later.
    """

    amount: float | None = None
    currency: str = Field(default="INR", max_length=3)
    receipt: str | None = Field(default=None, max_length=40)
    notes: dict[str, str] = Field(default_factory=dict)
    order_id: uuid.UUID | None = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()


class PaymentOrderRead(SQLModel):
    order_id: str
    amount: int
    currency: str
    key_id: str


class PaymentVerify(SQLModel):
    """
    Checkout callback fields as returned by the gateway, plus our own
    order id. All optional here; missing gateway fields are reported by
    the service with the field names.
    """

    model_config = ConfigDict(extra="ignore")

    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    order_id: str | None = None


class PaymentVerifyRead(SQLModel):
    payment_id: str
    order_id: str


class WebhookAck(SQLModel):
    received: bool = True
