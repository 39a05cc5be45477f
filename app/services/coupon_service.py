# app/services/coupon_service.py
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import ConflictError, CouponError, NotFoundError, ValidationError
from app.core.time_utils import as_utc, utcnow
from app.models.coupon import Coupon
from app.repositories.coupon_repo import CouponRepository
from app.schemas.coupon import (
    CouponCreate,
    CouponUpdate,
    CouponValidateRead,
    CouponValidateRequest,
)


def check_eligibility(coupon: Coupon, now: datetime | None = None) -> None:
    """
    Raise CouponError unless the coupon is active, inside its validity
    window and has usage remaining.
    """
    now = now or utcnow()

    if not coupon.is_active:
        raise CouponError("Invalid coupon code")

    if as_utc(coupon.valid_until) < now:
        raise CouponError("This coupon has expired")

    if as_utc(coupon.valid_from) > now:
        raise CouponError("This coupon is not yet active")

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponError("This coupon has reached its usage limit")


def calculate_discount(coupon: Coupon, amount: float) -> float:
    """
    Discount for an order amount, capped by max_discount_amount (for
    percentage coupons) and by the amount itself.
    """
    if coupon.discount_type == "percentage":
        discount = amount * coupon.discount_value / 100
        if coupon.max_discount_amount and discount > coupon.max_discount_amount:
            discount = coupon.max_discount_amount
    else:
        discount = coupon.discount_value

    return round(min(discount, amount), 2)


class CouponService:
    """
    Business logic for coupons.

    Responsibilities:
      - eligibility window / usage checks
      - discount computation for checkout and the validate endpoint
      - admin CRUD with unique codes
    """

    def __init__(self, repo: CouponRepository):
        self.repo = repo

    def resolve(
        self,
        session: Session,
        code: str,
        amount: float,
    ) -> tuple[Coupon, float]:
        """
        Look up an eligible coupon and compute its discount for `amount`.

        Raises:
            CouponError: unknown/ineligible code or minimum order unmet.
        """
        coupon = self.repo.get_by_code(session, code.strip().upper())
        if coupon is None:
            raise CouponError("Invalid coupon code")

        check_eligibility(coupon)

        if coupon.min_order_amount and amount < coupon.min_order_amount:
            raise CouponError(
                f"Minimum order amount of ₹{coupon.min_order_amount:g} required"
            )

        return coupon, calculate_discount(coupon, amount)

    def validate(
        self,
        session: Session,
        payload: CouponValidateRequest,
    ) -> CouponValidateRead:
        coupon, discount = self.resolve(session, payload.code, payload.cart_total)
        return CouponValidateRead(
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            discount_amount=discount,
            description=coupon.description,
        )

    # ----- Admin -----

    def list_coupons(self, session: Session, skip: int = 0, limit: int = 50) -> list[Coupon]:
        return self.repo.list(session, skip=skip, limit=limit)

    def get_coupon(self, session: Session, coupon_id: uuid.UUID) -> Coupon:
        coupon = self.repo.get_by_id(session, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon")
        return coupon

    def create_coupon(self, session: Session, payload: CouponCreate) -> Coupon:
        if self.repo.get_by_code(session, payload.code) is not None:
            raise ConflictError(f"Coupon code {payload.code} already exists")

        coupon = Coupon(**payload.model_dump())
        try:
            return self.repo.create(session, coupon)
        except IntegrityError:
            session.rollback()
            raise ConflictError(f"Coupon code {payload.code} already exists")

    def update_coupon(
        self,
        session: Session,
        coupon_id: uuid.UUID,
        payload: CouponUpdate,
    ) -> Coupon:
        coupon = self.get_coupon(session, coupon_id)
        changes = payload.model_dump(exclude_unset=True)

        valid_from = as_utc(changes.get("valid_from") or coupon.valid_from)
        valid_until = as_utc(changes.get("valid_until") or coupon.valid_until)
        if valid_until < valid_from:
            raise ValidationError("valid_until must be after valid_from")

        for key, value in changes.items():
            setattr(coupon, key, value)

        return self.repo.update(session, coupon)

    def delete_coupon(self, session: Session, coupon_id: uuid.UUID) -> None:
        coupon = self.get_coupon(session, coupon_id)
        self.repo.delete(session, coupon)
