import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductRead, ProductUpdate
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

service = ProductService(ProductRepository())


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    search: str | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
):
    """
    Storefront catalog: active products, newest first. `search` matches
    name or SKU.
    """
    return service.list_products(session, search=search, skip=skip, limit=limit)


@router.get("/{product_ref}", response_model=ProductRead)
def get_product(product_ref: str, session: Session = Depends(get_session)):
    return service.get_product(session, product_ref)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(payload: ProductCreate, session: Session = Depends(get_session)):
    """
    Add a product (admin only). The slug defaults to one derived from
    the name and gets a numeric suffix when taken.
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Edit catalog fields (admin only). Stock goes through /admin/inventory.
    """
    return service.update_product(session, product_id, payload)
