# app/schemas/inventory.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import Pagination

StockFilter = Literal["all", "low-stock", "out-of-stock", "in-stock"]


class StockUpdate(SQLModel):
    """
    Admin stock change for one product.

      - adjustment: signed delta, result clamped at 0 (wins over `stock`)
      - stock: absolute value (must be >= 0)
      - low_stock_threshold: optional, may be sent alone
    """

    model_config = ConfigDict(extra="forbid")

    stock: int | None = Field(default=None, ge=0)
    adjustment: int | None = None
    low_stock_threshold: int | None = Field(default=None, ge=0)
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("reason")
    @classmethod
    def normalize_reason(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class InventoryProductRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    sku: str | None
    price: float
    stock: int
    low_stock_threshold: int
    track_inventory: bool
    image_url: str | None


class StockUpdateRead(SQLModel):
    product: InventoryProductRead
    previous_stock: int
    new_stock: int


class BulkStockItem(SQLModel):
    product_id: uuid.UUID
    stock: int = Field(ge=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)


class BulkStockUpdate(SQLModel):
    updates: list[BulkStockItem] = Field(min_length=1)


class BulkStockUpdateRead(SQLModel):
    message: str
    modified_count: int


class InventoryStats(SQLModel):
    total_products: int = 0
    total_stock: int = 0
    out_of_stock: int = 0
    low_stock: int = 0
    total_value: float = 0.0


class InventoryOverview(SQLModel):
    products: list[InventoryProductRead]
    pagination: Pagination
    stats: InventoryStats


class InventoryAdjustmentRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    admin_id: uuid.UUID | None
    previous_stock: int
    new_stock: int
    delta: int
    adjustment: int | None
    reason: str
    created_at: datetime
