# app/routers/orders.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import is_owner_or_admin, require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.common import Envelope, ok
from app.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderWithItemsRead,
    OrderStatusUpdate,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
address_repo = AddressRepository()
service = OrderService(order_repo, cart_repo, address_repo)

owner_or_admin = is_owner_or_admin("order", "order_id")


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=Envelope[OrderWithItemsRead],
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Place an order.

    The order, its items and the clearing of the caller's cart are
    committed together or not at all.
    """
    return ok(service.create_order(session, current_user.id, payload))


@router.get("", response_model=Envelope[list[OrderWithItemsRead]])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    List the authenticated user's orders with items, newest first.
    """
    return ok(service.list_user_orders(session, current_user.id))


# -------- Admin endpoints --------


@router.get(
    "/all",
    response_model=Envelope[list[OrderRead]],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """
    List all orders (admin only).
    """
    return ok(service.list_all_orders(session, skip, limit))


@router.patch(
    "/{order_id}/status",
    response_model=Envelope[OrderRead],
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only). Any valid status is accepted;
    owners use the cancel route instead.
    """
    return ok(service.update_status(session, order_id, payload.status))


# -------- Owner or admin --------


@router.get("/{order_id}", response_model=Envelope[OrderWithItemsRead])
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(owner_or_admin),
):
    return ok(service.get_order(session, order_id, current_user))


@router.put("/{order_id}/cancel", response_model=Envelope[OrderRead])
def cancel_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(owner_or_admin),
):
    """
    Cancel an order while it is still pending or processing.
    """
    return ok(service.cancel_order(session, order_id, current_user))
