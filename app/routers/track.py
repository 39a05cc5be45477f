# app/routers/track.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import OrderTrackingRead
from app.services.coupon_service import CouponService
from app.services.order_service import OrderService

router = APIRouter(prefix="/track", tags=["Tracking"])

service = OrderService(
    OrderRepository(),
    ProductRepository(),
    CouponService(CouponRepository()),
    get_settings(),
)


@router.get("", response_model=OrderTrackingRead)
def track_order(
    session: Session = Depends(get_session),
    order_number: str | None = Query(default=None, alias="orderNumber"),
    phone: str | None = None,
):
    """
    Public order tracking.

    - No authentication.
    - `phone`, when given, must end in the same four digits as the
      order's shipping phone.
    """
    return service.track_order(session, order_number, phone)
