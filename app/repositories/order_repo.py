# app/repositories/order_repo.py
import uuid
from dataclasses import dataclass

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.core.time_utils import utcnow
from app.models.order import Order, OrderItem, OrderTimelineEntry

# Columns the admin listing may sort on
SORTABLE_FIELDS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total": Order.total,
    "status": Order.status,
    "order_number": Order.order_number,
}


@dataclass
class OrderQuery:
    """
    Admin listing criteria. `sort_field` must be a key of SORTABLE_FIELDS.
    """

    status: str | None = None
    payment_status: str | None = None
    search: str | None = None
    sort_field: str = "created_at"
    descending: bool = True


def build_order_filters(query: OrderQuery) -> list:
    clauses = []
    if query.status:
        clauses.append(Order.status == query.status)
    if query.payment_status:
        clauses.append(Order.payment_status == query.payment_status)
    if query.search:
        pattern = f"%{query.search.lower()}%"
        clauses.append(
            or_(
                func.lower(Order.order_number).like(pattern),
                func.lower(Order.shipping_name).like(pattern),
                Order.shipping_phone.like(pattern),
            )
        )
    return clauses


class OrderRepository:
    """
    Data access layer for orders, order_items and order_timeline.

    NOTE:
      - No commits here; status writes and their timeline rows must land
        in the same transaction. The service calls session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        query: OrderQuery,
        skip: int = 0,
        limit: int = 20,
    ) -> list[Order]:
        column = SORTABLE_FIELDS[query.sort_field]
        stmt = (
            select(Order)
            .where(*build_order_filters(query))
            .order_by(column.desc() if query.descending else column.asc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def count_all(self, session: Session, query: OrderQuery) -> int:
        stmt = select(func.count()).select_from(Order).where(*build_order_filters(query))
        return int(session.exec(stmt).one() or 0)

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_for_user(
        self,
        session: Session,
        order_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Order | None:
        """
        Ownership is part of the query, never checked after the fetch.
        """
        stmt = select(Order).where(Order.id == order_id, Order.user_id == user_id)
        return session.exec(stmt).first()

    def get_for_user_by_number(
        self,
        session: Session,
        order_number: str,
        user_id: uuid.UUID,
    ) -> Order | None:
        stmt = select(Order).where(
            Order.order_number == order_number,
            Order.user_id == user_id,
        )
        return session.exec(stmt).first()

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def get_by_gateway_order_id(self, session: Session, gateway_order_id: str) -> Order | None:
        stmt = select(Order).where(Order.gateway_order_id == gateway_order_id)
        return session.exec(stmt).first()

    def get_by_gateway_payment_id(
        self,
        session: Session,
        gateway_payment_id: str,
    ) -> Order | None:
        stmt = select(Order).where(Order.gateway_payment_id == gateway_payment_id)
        return session.exec(stmt).first()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK, surface unique violations
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        order.updated_at = utcnow()
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    def anonymize_for_user(self, session: Session, user_id: uuid.UUID) -> int:
        """
        Overwrite contact PII on all of a user's orders and detach them
        from the account. Everything else is kept for business records.
        """
        stmt = (
            update(Order)
            .where(Order.user_id == user_id)
            .values(
                shipping_name="Deleted User",
                shipping_phone="0000000000",
                shipping_email="deleted@user.com",
                user_id=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return session.exec(stmt).rowcount

    # ---- Status + timeline ----

    def set_status(
        self,
        session: Session,
        order: Order,
        status: str,
        message: str,
    ) -> OrderTimelineEntry:
        """
        Write the status together with its timeline entry.
        Both are flushed in the caller's transaction.
        """
        now = utcnow()
        order.status = status
        order.updated_at = now
        entry = OrderTimelineEntry(
            order_id=order.id,
            status=status,
            message=message,
            timestamp=now,
        )
        session.add(order)
        session.add(entry)
        session.flush()
        return entry

    def list_timeline(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderTimelineEntry]:
        stmt = (
            select(OrderTimelineEntry)
            .where(OrderTimelineEntry.order_id == order_id)
            .order_by(OrderTimelineEntry.id)
        )
        return session.exec(stmt).all()

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def count_items(self, session: Session, order_id: uuid.UUID) -> int:
        stmt = (
            select(func.coalesce(func.sum(OrderItem.quantity), 0))
            .where(OrderItem.order_id == order_id)
        )
        return int(session.exec(stmt).one() or 0)

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
