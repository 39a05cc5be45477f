# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Only the fields the order flow and the inventory screens need live
    here; stock is mutated through atomic UPDATE statements in
    ProductRepository, never by read-modify-write.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        min_length=3,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    sku: str | None = Field(
        default=None,
        max_length=64,
        unique=True,
        index=True,
        description="Stock keeping unit",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description / HTML",
    )

    price: float = Field(
        gt=0,
        description="Unit price (INR)",
    )

    image_url: str | None = Field(
        default=None,
        description="Primary image URL (hosted on the image CDN)",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    low_stock_threshold: int = Field(
        default=5,
        ge=0,
        description="Stock at or below this level counts as low stock",
    )

    track_inventory: bool = Field(
        default=True,
        description="When false, orders do not reserve stock",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class InventoryAdjustment(SQLModel, table=True):
    """
    Append-only stock ledger.

    One row per stock change made from the admin inventory screens.
    Rows are inserted, never updated or deleted.
    """

    __tablename__ = "inventory_adjustments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    admin_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        description="Admin who made the change",
    )

    previous_stock: int
    new_stock: int
    delta: int = Field(description="new_stock - previous_stock")

    adjustment: int | None = Field(
        default=None,
        description="Signed adjustment as requested (None for absolute sets)",
    )

    reason: str = Field(default="Manual adjustment", max_length=255)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
