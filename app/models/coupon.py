# app/models/coupon.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Coupon(SQLModel, table=True):
    """
    Discount coupon.

    A coupon is currently eligible iff:
      - is_active
      - valid_from <= now <= valid_until
      - usage_limit is unset or used_count < usage_limit
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    code: str = Field(
        max_length=20,
        unique=True,
        index=True,
        description="Uppercase coupon code",
    )

    description: str | None = Field(default=None, max_length=200)

    # percentage | fixed
    discount_type: str = Field(description="percentage | fixed")

    discount_value: float = Field(ge=0)

    min_order_amount: float | None = Field(default=None, ge=0)
    max_discount_amount: float | None = Field(default=None, ge=0)

    usage_limit: int | None = Field(default=None, ge=0)
    used_count: int = Field(default=0, ge=0)

    valid_from: datetime
    valid_until: datetime

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
