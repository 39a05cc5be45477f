import re
import uuid

from sqlmodel import Session

from app.core.errors import ConflictError, NotFoundError
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductUpdate


def slugify(raw: str) -> str:
    """'Resin Name Plate!' -> 'resin-name-plate'."""
    value = re.sub(r"[^a-z0-9]+", "-", raw.strip().lower()).strip("-")
    return value or "product"


class ProductService:
    """
    Catalog maintenance for the products that orders snapshot.

    Stock itself is not written here; InventoryService owns every stock
    change so that each one lands in the adjustment ledger.
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def list_products(
        self,
        session: Session,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        return self.repo.list_products(
            session,
            search=search.strip() if search else None,
            skip=skip,
            limit=limit,
            only_active=only_active,
        )

    def get_product(self, session: Session, product_ref: str) -> Product:
        """Look a product up by id or by slug."""
        try:
            product = self.repo.get_by_id(session, uuid.UUID(product_ref))
        except ValueError:
            product = self.repo.get_by_slug(session, product_ref.lower())

        if not product:
            raise NotFoundError("Product")
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        if payload.sku:
            self._check_sku(session, payload.sku)

        slug = self._free_slug(session, slugify(payload.slug or payload.name))
        product = Product(**payload.model_dump(exclude={"slug"}), slug=slug)
        return self.repo.create(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product")

        changes = payload.model_dump(exclude_unset=True)

        if changes.get("slug"):
            wanted = slugify(changes["slug"])
            changes["slug"] = wanted if wanted == product.slug else self._free_slug(session, wanted)

        if changes.get("sku"):
            self._check_sku(session, changes["sku"], product.id)

        for key, value in changes.items():
            setattr(product, key, value)

        return self.repo.update(session, product)

    def _free_slug(self, session: Session, base: str) -> str:
        """First of base, base-2, base-3, ... not taken yet."""
        slug, n = base, 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base}-{n}"
            n += 1
        return slug

    def _check_sku(
        self,
        session: Session,
        sku: str,
        product_id: uuid.UUID | None = None,
    ) -> None:
        existing = self.repo.get_by_sku(session, sku)
        if existing is not None and existing.id != product_id:
            raise ConflictError(f"SKU {sku} already exists")
