# app/routers/admin_orders.py
import uuid

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.config import get_settings
from app.core.notifications import NotifyFn, get_order_notify
from app.database import get_session
from app.models.user import User
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    AdminOrderList,
    AdminOrderUpdate,
    OrderDetailRead,
    OrderStatus,
    PaymentStatus,
)
from app.services.coupon_service import CouponService
from app.services.order_service import OrderService

router = APIRouter(
    prefix="/admin/orders",
    tags=["Admin Orders"],
    dependencies=[Depends(require_admin)],
)

service = OrderService(
    OrderRepository(),
    ProductRepository(),
    CouponService(CouponRepository()),
    get_settings(),
)


@router.get("", response_model=AdminOrderList)
def list_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    payment_status: PaymentStatus | None = None,
    search: str | None = None,
    sort: str | None = Query(default=None, description="e.g. -created_at, total"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    """
    List all orders with filters, search and pagination (admin only).

    Sortable fields: created_at, updated_at, total, status, order_number.
    Prefix with '-' for descending order.
    """
    return service.admin_list_orders(
        session,
        status=status,
        payment_status=payment_status,
        search=search,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderDetailRead)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items and timeline (admin only).
    """
    return service.admin_get_order(session, order_id)


@router.put("/{order_id}", response_model=OrderDetailRead)
def update_order(
    order_id: uuid.UUID,
    payload: AdminOrderUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    notify: NotifyFn = Depends(get_order_notify),
):
    """
    Update status, payment status, tracking or notes (admin only).

    Every status change appends to the order timeline. The customer is
    emailed unless `send_email` is false.
    """
    return service.admin_update_order(session, order_id, payload, admin, notify)
