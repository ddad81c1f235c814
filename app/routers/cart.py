# app/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import is_owner_or_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartSummary, CartItemCreate, CartItemRead, CartItemUpdate
from app.schemas.common import Envelope, ok
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


@router.get("", response_model=Envelope[CartSummary])
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get current user's cart summary.
    """
    return ok(service.get_cart_summary(session, current_user.id))


@router.post("", response_model=Envelope[CartSummary])
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add product to the current user's cart.

    Returns the updated cart summary.
    """
    return ok(service.add_to_cart(session, current_user.id, payload))


@router.delete("", response_model=Envelope[CartSummary])
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return ok(service.clear_cart(session, current_user.id))


# -------- By cart line id --------


@router.get(
    "/items/{item_id}",
    response_model=Envelope[CartItemRead],
    dependencies=[Depends(is_owner_or_admin("cart", "item_id"))],
)
def get_cart_line(
    item_id: int,
    session: Session = Depends(get_session),
):
    return ok(service.get_line(session, item_id))


@router.delete(
    "/items/{item_id}",
    response_model=Envelope[CartSummary],
    dependencies=[Depends(is_owner_or_admin("cart", "item_id"))],
)
def remove_cart_line(
    item_id: int,
    session: Session = Depends(get_session),
):
    """
    Remove a cart line by id. Returns the owner's updated cart.
    """
    return ok(service.remove_line(session, item_id))


# -------- By product id --------


@router.patch("/{product_id}", response_model=Envelope[CartSummary])
def update_cart_item(
    product_id: int,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update quantity of a product in the cart.

    Returns the updated cart summary.
    """
    return ok(
        service.update_quantity(
            session=session,
            user_id=current_user.id,
            product_id=product_id,
            payload=payload,
        )
    )


@router.delete("/{product_id}", response_model=Envelope[CartSummary])
def remove_cart_item(
    product_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Remove a product from the cart.
    """
    return ok(service.remove_item(session, current_user.id, product_id))
