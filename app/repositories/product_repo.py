# app/repositories/product_repo.py
import uuid
from dataclasses import dataclass

from sqlalchemy import and_, case, func, or_, update
from sqlmodel import Session, select

from app.models.product import InventoryAdjustment, Product


@dataclass
class StockQuery:
    """
    Product listing criteria shared by the catalog and the inventory
    screens; `stock_filter` is one of all | low-stock | out-of-stock | in-stock.
    """

    stock_filter: str = "all"
    search: str | None = None
    only_active: bool = True


def build_stock_filters(query: StockQuery) -> list:
    """
    Translate a StockQuery into WHERE clauses.
    """
    clauses = []
    if query.only_active:
        clauses.append(Product.is_active == True)  # noqa: E712

    if query.search:
        pattern = f"%{query.search.lower()}%"
        clauses.append(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.sku, "")).like(pattern),
            )
        )

    if query.stock_filter == "low-stock":
        clauses.append(
            and_(Product.stock > 0, Product.stock <= Product.low_stock_threshold)
        )
    elif query.stock_filter == "out-of-stock":
        clauses.append(Product.stock == 0)
    elif query.stock_filter == "in-stock":
        clauses.append(Product.stock > Product.low_stock_threshold)

    return clauses


class ProductRepository:
    """
    Data access layer for Product and its inventory ledger.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    - Stock is only changed through single UPDATE statements so that
      concurrent writers cannot lose each other's changes.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def get_by_sku(self, session: Session, sku: str) -> Product | None:
        stmt = select(Product).where(Product.sku == sku)
        return session.exec(stmt).first()

    def list_products(
        self,
        session: Session,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        query = StockQuery(search=search, only_active=only_active)
        stmt = (
            select(Product)
            .where(*build_stock_filters(query))
            .order_by(Product.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    # ----- Inventory listing -----

    def list_stock(
        self,
        session: Session,
        query: StockQuery,
        skip: int = 0,
        limit: int = 20,
    ) -> list[Product]:
        stmt = (
            select(Product)
            .where(*build_stock_filters(query))
            .order_by(Product.stock.asc(), Product.name)
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def count_stock(self, session: Session, query: StockQuery) -> int:
        stmt = select(func.count()).select_from(Product).where(*build_stock_filters(query))
        return int(session.exec(stmt).one() or 0)

    def stock_stats(self, session: Session) -> tuple:
        """
        Aggregate (total_products, total_stock, out_of_stock, low_stock,
        total_value) over active products.
        """
        low_stock = and_(Product.stock > 0, Product.stock <= Product.low_stock_threshold)
        stmt = select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock), 0),
            func.coalesce(func.sum(case((Product.stock == 0, 1), else_=0)), 0),
            func.coalesce(func.sum(case((low_stock, 1), else_=0)), 0),
            func.coalesce(func.sum(Product.stock * Product.price), 0.0),
        ).where(Product.is_active == True)  # noqa: E712
        return session.exec(stmt).one()

    # ----- Atomic stock mutations (no commit) -----

    def lock_for_update(self, session: Session, product_id: uuid.UUID) -> Product | None:
        """
        Load a product with a row lock held until the transaction ends.
        """
        stmt = select(Product).where(Product.id == product_id).with_for_update()
        return session.exec(stmt).first()

    def apply_adjustment(self, session: Session, product_id: uuid.UUID, delta: int) -> int:
        """
        stock = max(0, stock + delta), computed by the database.

        Returns the number of rows updated (0 if the product is missing).
        """
        new_stock = Product.stock + delta
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=case((new_stock < 0, 0), else_=new_stock))
            .execution_options(synchronize_session=False)
        )
        return session.exec(stmt).rowcount

    def set_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        stock: int | None = None,
        low_stock_threshold: int | None = None,
    ) -> int:
        values: dict[str, int] = {}
        if stock is not None:
            values["stock"] = stock
        if low_stock_threshold is not None:
            values["low_stock_threshold"] = low_stock_threshold
        if not values:
            return 0
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return session.exec(stmt).rowcount

    def reserve_stock(self, session: Session, product_id: uuid.UUID, quantity: int) -> bool:
        """
        Decrement stock by `quantity` only if enough is on hand.

        Returns False when the guard fails (insufficient stock).
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return session.exec(stmt).rowcount == 1

    def release_stock(self, session: Session, product_id: uuid.UUID, quantity: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        session.exec(stmt)

    # ----- Inventory ledger -----

    def add_adjustment(
        self,
        session: Session,
        entry: InventoryAdjustment,
    ) -> InventoryAdjustment:
        session.add(entry)
        session.flush()
        return entry

    def list_adjustments(
        self,
        session: Session,
        product_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[InventoryAdjustment]:
        stmt = (
            select(InventoryAdjustment)
            .where(InventoryAdjustment.product_id == product_id)
            .order_by(InventoryAdjustment.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()
