# app/routers/inventory.py
import uuid

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.schemas.inventory import (
    BulkStockUpdate,
    BulkStockUpdateRead,
    InventoryAdjustmentRead,
    InventoryOverview,
    StockFilter,
    StockUpdate,
    StockUpdateRead,
)
from app.services.inventory_service import InventoryService

router = APIRouter(
    prefix="/admin/inventory",
    tags=["Admin Inventory"],
    dependencies=[Depends(require_admin)],
)

service = InventoryService(ProductRepository())


@router.get("", response_model=InventoryOverview)
def inventory_overview(
    session: Session = Depends(get_session),
    stock_filter: StockFilter = Query(default="all", alias="filter"),
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    """
    Stock levels of active products, lowest stock first, with totals.
    """
    return service.overview(
        session,
        stock_filter=stock_filter,
        search=search,
        page=page,
        limit=limit,
    )


@router.patch("", response_model=BulkStockUpdateRead)
def bulk_update_stock(
    payload: BulkStockUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Set absolute stock for several products at once.
    """
    return service.bulk_update(session, payload, admin)


@router.patch("/{product_id}", response_model=StockUpdateRead)
def update_stock(
    product_id: uuid.UUID,
    payload: StockUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Adjust (signed delta, floored at 0) or set one product's stock.
    """
    return service.update_stock(session, product_id, payload, admin)


@router.get("/{product_id}/adjustments", response_model=list[InventoryAdjustmentRead])
def list_adjustments(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
):
    """
    Stock change history of a product, newest first.
    """
    return service.list_adjustments(session, product_id, skip, limit)
