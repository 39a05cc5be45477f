# app/routers/coupons.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.coupon_repo import CouponRepository
from app.schemas.coupon import (
    CouponCreate,
    CouponRead,
    CouponUpdate,
    CouponValidateRead,
    CouponValidateRequest,
)
from app.services.coupon_service import CouponService

router = APIRouter(tags=["Coupons"])

service = CouponService(CouponRepository())


# -------- Public endpoints --------


@router.post("/coupons/validate", response_model=CouponValidateRead)
def validate_coupon(
    payload: CouponValidateRequest,
    session: Session = Depends(get_session),
):
    """
    Check a coupon against a cart total and return the discount.
    """
    return service.validate(session, payload)


# -------- Admin endpoints --------


@router.get(
    "/admin/coupons",
    response_model=list[CouponRead],
    dependencies=[Depends(require_admin)],
)
def list_coupons(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_coupons(session, skip, limit)


@router.post(
    "/admin/coupons",
    response_model=CouponRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_coupon(
    payload: CouponCreate,
    session: Session = Depends(get_session),
):
    """
    Create a coupon (admin only). Codes are unique and stored uppercase.
    """
    return service.create_coupon(session, payload)


@router.patch(
    "/admin/coupons/{coupon_id}",
    response_model=CouponRead,
    dependencies=[Depends(require_admin)],
)
def update_coupon(
    coupon_id: uuid.UUID,
    payload: CouponUpdate,
    session: Session = Depends(get_session),
):
    return service.update_coupon(session, coupon_id, payload)


@router.delete(
    "/admin/coupons/{coupon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_coupon(
    coupon_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    service.delete_coupon(session, coupon_id)
    return None
