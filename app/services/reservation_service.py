# app/services/reservation_service.py
import logging

from sqlmodel import Session

from app.core.errors import ValidationError
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Holds and releases the stock behind an order.

    `Order.stock_reserved` records whether the order currently holds its
    quantities, so a release only ever gives back what a reserve took.
    Nothing here commits; callers commit or roll back.
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.product_repo = product_repo

    def reserve(self, session: Session, order: Order) -> None:
        """
        Take the order's quantities out of stock.

        Raises:
            ValidationError: a tracked product is short. Stock taken for
                earlier items is handed back first.
        """
        if order.stock_reserved:
            return

        taken: list[OrderItem] = []
        for item in self._tracked_items(session, order):
            if not self.product_repo.reserve_stock(session, item.product_id, item.quantity):
                for done in taken:
                    self.product_repo.release_stock(session, done.product_id, done.quantity)
                raise ValidationError(f"Insufficient stock for {item.name}")
            taken.append(item)

        order.stock_reserved = True
        logger.debug("Stock reserved for order %s", order.order_number)

    def release(self, session: Session, order: Order) -> bool:
        """Return held stock. False when the order held none."""
        if not order.stock_reserved:
            return False

        for item in self._tracked_items(session, order):
            self.product_repo.release_stock(session, item.product_id, item.quantity)

        order.stock_reserved = False
        logger.debug("Stock released for order %s", order.order_number)
        return True

    def _tracked_items(self, session: Session, order: Order) -> list[OrderItem]:
        items = []
        for item in self.order_repo.list_items_for_order(session, order.id):
            product = self.product_repo.get_by_id(session, item.product_id)
            if product and product.track_inventory:
                items.append(item)
        return items
