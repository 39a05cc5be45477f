# app/routers/orders.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.core.config import get_settings
from app.core.notifications import NotifyFn, get_order_notify
from app.database import get_session
from app.models.user import User
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    InvoiceRead,
    OrderAction,
    OrderCreate,
    OrderDetailRead,
    OrderRead,
)
from app.services.coupon_service import CouponService
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
coupon_service = CouponService(CouponRepository())
service = OrderService(order_repo, product_repo, coupon_service, get_settings())


@router.post(
    "",
    response_model=OrderDetailRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    notify: NotifyFn = Depends(get_order_notify),
):
    """
    Place an order.

    - Prices come from the live catalog, not from the client.
    - Stock is reserved and the coupon consumed in the same transaction.
    - Cash on Delivery orders are confirmed immediately.
    """
    return service.create_order(session, current_user, payload, notify)


@router.get("", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
):
    """
    List the authenticated user's orders (newest first, without items).
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get("/{order_ref}", response_model=OrderDetailRead)
def get_my_order(
    order_ref: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get one of the user's orders by id or order number.

    Orders belonging to someone else are reported as not found.
    """
    return service.get_user_order(session, current_user.id, order_ref)


@router.put("/{order_ref}", response_model=OrderDetailRead)
def act_on_order(
    order_ref: str,
    payload: OrderAction,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    notify: NotifyFn = Depends(get_order_notify),
):
    """
    Customer action on an order. Supported: {"action": "cancel"}.

      pending   -> cancelled
      confirmed -> cancelled
    """
    return service.cancel_order(session, current_user.id, order_ref, payload, notify)


@router.get("/{order_ref}/invoice", response_model=InvoiceRead)
def get_invoice(
    order_ref: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Invoice data for one of the user's orders.
    """
    return service.get_invoice(session, current_user.id, order_ref)
