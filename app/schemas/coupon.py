# app/schemas/coupon.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

DiscountType = Literal["percentage", "fixed"]


def _normalize_code(v: str) -> str:
    v = v.strip().upper()
    if not v:
        raise ValueError("code cannot be empty")
    return v


class CouponValidateRequest(SQLModel):
    code: str = Field(max_length=20)
    cart_total: float = Field(ge=0)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _normalize_code(v)


class CouponValidateRead(SQLModel):
    code: str
    discount_type: DiscountType
    discount_value: float
    discount_amount: float
    description: str | None = None


class CouponCreate(SQLModel):
    """
    Admin payload for creating a coupon.
    """

    model_config = ConfigDict(extra="forbid")

    code: str = Field(max_length=20)
    description: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType
    discount_value: float = Field(ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    max_discount_amount: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=0)
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _normalize_code(v)

    @model_validator(mode="after")
    def check_window(self) -> "CouponCreate":
        if self.valid_until < self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        if self.discount_type == "percentage" and self.discount_value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class CouponUpdate(SQLModel):
    """
    Partial admin update. The code itself is immutable.
    """

    model_config = ConfigDict(extra="forbid")

    description: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    max_discount_amount: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool | None = None


class CouponRead(SQLModel):
    id: uuid.UUID
    code: str
    description: str | None
    discount_type: DiscountType
    discount_value: float
    min_order_amount: float | None
    max_discount_amount: float | None
    usage_limit: int | None
    used_count: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    created_at: datetime
