# app/repositories/coupon_repo.py
import uuid

from sqlalchemy import or_, update
from sqlmodel import Session, select

from app.models.coupon import Coupon


class CouponRepository:
    """
    Data access layer for coupons.
    """

    def get_by_id(self, session: Session, coupon_id: uuid.UUID) -> Coupon | None:
        return session.get(Coupon, coupon_id)

    def get_by_code(self, session: Session, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == code)
        return session.exec(stmt).first()

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[Coupon]:
        stmt = select(Coupon).order_by(Coupon.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def create(self, session: Session, coupon: Coupon) -> Coupon:
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    def update(self, session: Session, coupon: Coupon) -> Coupon:
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    def delete(self, session: Session, coupon: Coupon) -> None:
        session.delete(coupon)
        session.commit()

    def consume_usage(self, session: Session, coupon_id: uuid.UUID) -> bool:
        """
        Increment used_count if the usage limit still allows it.

        Does not commit; runs inside the checkout transaction.
        Returns False if the limit was reached in the meantime.
        """
        stmt = (
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(Coupon.usage_limit == None, Coupon.used_count < Coupon.usage_limit),  # noqa: E711
            )
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return session.exec(stmt).rowcount == 1
