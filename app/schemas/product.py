# app/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = None
    sku: str | None = Field(default=None, max_length=64)
    description: str | None = None
    price: float = Field(gt=0)
    image_url: str | None = None
    stock: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)
    track_inventory: bool = True
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must be at least 3 characters")
        return v

    @field_validator("slug", "sku")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty if provided")
        return v


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    name: str
    slug: str
    sku: str | None
    description: str | None
    price: float
    image_url: str | None
    stock: int
    low_stock_threshold: int
    track_inventory: bool
    is_active: bool
    created_at: datetime


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.

    Stock is not editable here; use the inventory endpoints so every
    change lands in the adjustment ledger.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = None
    sku: str | None = Field(default=None, max_length=64)
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    image_url: str | None = None
    track_inventory: bool | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must be at least 3 characters")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty")
        return v
