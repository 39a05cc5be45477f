# app/services/inventory_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.product import InventoryAdjustment, Product
from app.models.user import User
from app.repositories.product_repo import ProductRepository, StockQuery
from app.schemas.common import Pagination
from app.schemas.inventory import (
    BulkStockUpdate,
    BulkStockUpdateRead,
    InventoryAdjustmentRead,
    InventoryOverview,
    InventoryProductRead,
    InventoryStats,
    StockUpdate,
    StockUpdateRead,
)

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Manual adjustment"


class InventoryService:
    """
    Admin inventory management.

    Every stock change is a single UPDATE statement followed by a ledger
    row recording who changed what, in the same transaction.
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    def overview(
        self,
        session: Session,
        stock_filter: str = "all",
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> InventoryOverview:
        query = StockQuery(stock_filter=stock_filter, search=search.strip() if search else None)

        products = self.product_repo.list_stock(
            session, query, skip=(page - 1) * limit, limit=limit
        )
        total = self.product_repo.count_stock(session, query)
        total_products, total_stock, out_of_stock, low_stock, total_value = (
            self.product_repo.stock_stats(session)
        )

        return InventoryOverview(
            products=[InventoryProductRead.model_validate(p, from_attributes=True) for p in products],
            pagination=Pagination.build(page, limit, total),
            stats=InventoryStats(
                total_products=total_products,
                total_stock=total_stock,
                out_of_stock=out_of_stock,
                low_stock=low_stock,
                total_value=round(float(total_value), 2),
            ),
        )

    def update_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: StockUpdate,
        admin: User,
    ) -> StockUpdateRead:
        """
        Apply a signed adjustment (clamped at 0) or an absolute stock value.
        `adjustment` wins when both are sent.
        """
        if (
            payload.adjustment is None
            and payload.stock is None
            and payload.low_stock_threshold is None
        ):
            raise ValidationError("Provide stock or adjustment")

        product = self.product_repo.lock_for_update(session, product_id)
        if not product:
            raise NotFoundError("Product")

        previous = product.stock
        stock_requested = payload.adjustment is not None or payload.stock is not None

        if payload.adjustment is not None:
            self.product_repo.apply_adjustment(session, product_id, payload.adjustment)
            self.product_repo.set_stock(
                session, product_id, low_stock_threshold=payload.low_stock_threshold
            )
        else:
            self.product_repo.set_stock(
                session,
                product_id,
                stock=payload.stock,
                low_stock_threshold=payload.low_stock_threshold,
            )

        session.refresh(product)

        if stock_requested:
            self._record(
                session,
                product,
                previous,
                admin,
                adjustment=payload.adjustment,
                reason=payload.reason,
            )

        session.commit()
        session.refresh(product)

        return StockUpdateRead(
            product=InventoryProductRead.model_validate(product, from_attributes=True),
            previous_stock=previous,
            new_stock=product.stock,
        )

    def bulk_update(
        self,
        session: Session,
        payload: BulkStockUpdate,
        admin: User,
    ) -> BulkStockUpdateRead:
        """
        Set absolute stock for many products at once. Unknown products
        are skipped; modified_count counts rows whose values changed.
        """
        modified = 0

        for item in payload.updates:
            product = self.product_repo.lock_for_update(session, item.product_id)
            if not product:
                logger.info("Bulk stock update skipped unknown product %s", item.product_id)
                continue

            previous = product.stock
            previous_threshold = product.low_stock_threshold

            self.product_repo.set_stock(
                session,
                item.product_id,
                stock=item.stock,
                low_stock_threshold=item.low_stock_threshold,
            )
            session.refresh(product)

            if product.stock != previous:
                self._record(session, product, previous, admin, reason="Bulk update")

            if product.stock != previous or product.low_stock_threshold != previous_threshold:
                modified += 1

        session.commit()

        return BulkStockUpdateRead(
            message=f"Updated {modified} products",
            modified_count=modified,
        )

    def list_adjustments(
        self,
        session: Session,
        product_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[InventoryAdjustmentRead]:
        if not self.product_repo.get_by_id(session, product_id):
            raise NotFoundError("Product")

        entries = self.product_repo.list_adjustments(session, product_id, skip=skip, limit=limit)
        return [InventoryAdjustmentRead.model_validate(e, from_attributes=True) for e in entries]

    def _record(
        self,
        session: Session,
        product: Product,
        previous: int,
        admin: User,
        adjustment: int | None = None,
        reason: str | None = None,
    ) -> None:
        reason = reason or DEFAULT_REASON
        self.product_repo.add_adjustment(
            session,
            InventoryAdjustment(
                product_id=product.id,
                admin_id=admin.id,
                previous_stock=previous,
                new_stock=product.stock,
                delta=product.stock - previous,
                adjustment=adjustment,
                reason=reason,
            ),
        )
        logger.info(
            "Inventory %s (%s): %d -> %d by admin %s, reason: %s",
            product.name,
            product.sku or product.id,
            previous,
            product.stock,
            admin.id,
            reason,
        )
