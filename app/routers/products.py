# app/routers/products.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.common import Envelope, ok
from app.schemas.product import ProductCreate, ProductRead, ProductUpdate
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


@router.get("/{product_id}", response_model=Envelope[ProductRead])
def get_product(
    product_id: int,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id.

    - Public endpoint.
    """
    return ok(service.get_product(session, product_id))


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[ProductRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    return ok(service.create_product(session, payload))


@router.patch(
    "/{product_id}",
    response_model=Envelope[ProductRead],
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return ok(service.update_product(session, product_id, payload))
