# app/services/order_service.py
import logging

from sqlmodel import Session

from app.core.errors import InvalidStateError, NotFoundError, ValidationError
from app.core.security import utcnow
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemCreate,
    OrderItemRead,
    OrderWithItemsRead,
)

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = {"pending", "processing"}

# Totals are compared at cent precision
TOTAL_TOLERANCE = 0.005


def effective_line_total(price: float, discount_amount: float, quantity: int) -> float:
    return round((price - discount_amount) * quantity, 2)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order atomically: order row, item snapshots, cart clear
      - Check the client's total against its items
      - Admin status updates and the owner cancel rule
      - Read orders with their items
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        address_repo: AddressRepository,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.address_repo = address_repo

    # -------- Creation --------

    @staticmethod
    def _items_total(items: list[OrderItemCreate]) -> float:
        return round(
            sum(
                effective_line_total(it.price, it.discount_amount, it.quantity)
                for it in items
            ),
            2,
        )

    def _resolve_address(self, session: Session, user_id: int, payload: OrderCreate) -> str:
        if payload.address_id is None:
            return payload.address  # type: ignore[return-value]
        saved = self.address_repo.get_for_user(session, user_id, payload.address_id)
        if saved is None:
            raise NotFoundError("Address not found")
        return saved.as_snapshot()

    def create_order(
        self,
        session: Session,
        user_id: int,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Place an order for `user_id`.

        Steps:
          1. Check the payload total against the items.
          2. Resolve the shipping address snapshot.
          3. Insert the Order row (status='pending').
          4. Insert one OrderItem snapshot per payload item.
          5. Delete every cart row of the user.
          6. Commit; any failure rolls back all of the above.
          7. Re-read and return the persisted order with its items.

        Stock is neither re-checked nor decremented here.
        """
        expected_total = self._items_total(payload.items)
        if abs(expected_total - payload.total_amount) > TOTAL_TOLERANCE:
            raise ValidationError(
                f"Total amount {payload.total_amount:.2f} does not match "
                f"items total {expected_total:.2f}"
            )

        try:
            address = self._resolve_address(session, user_id, payload)

            order = self.order_repo.create_order(
                session,
                Order(
                    user_id=user_id,
                    address=address,
                    phone_number=payload.phone_number,
                    total_amount=expected_total,
                    status="pending",
                    notes=payload.notes,
                ),
            )

            self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=it.product_id,
                        product_name=it.product_name,
                        product_price=it.price,
                        quantity=it.quantity,
                        discount_amount=it.discount_amount,
                        image_url=it.image_url,
                    )
                    for it in payload.items
                ],
            )

            cleared = self.cart_repo.clear_for_user(session, user_id)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(
            "Order %s created for user %s (%s items, %s cart rows cleared)",
            order.id,
            user_id,
            len(payload.items),
            cleared,
        )
        return self._load_order_with_items(session, order.id)

    # -------- Reads --------

    def list_user_orders(self, session: Session, user_id: int) -> list[OrderWithItemsRead]:
        """Orders of the user with their items, newest first."""
        orders = self.order_repo.list_for_user(session, user_id)
        items = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [self._build_order_with_items_dto(o, items[o.id]) for o in orders]

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """List all orders (admin only)."""
        return self.order_repo.list_all(session, skip, limit)

    def get_order(
        self,
        session: Session,
        order_id: int,
        current_user: User,
    ) -> OrderWithItemsRead:
        """
        Owner or admin view of one order.

        Non-owners get 404 rather than learning the order exists.
        """
        order = self._get_visible_order(session, order_id, current_user)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Status changes --------

    def update_status(
        self,
        session: Session,
        order_id: int,
        new_status: str,
    ) -> Order:
        """
        Admin status change. Any value of OrderStatus is accepted, in any
        order; the request schema already restricts it to that set.
        Setting the current status again is a no-op.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")

        if new_status == order.status:
            return order

        return self._set_status(session, order, new_status)

    def cancel_order(
        self,
        session: Session,
        order_id: int,
        current_user: User,
    ) -> Order:
        """Owner or admin cancel, only while pending or processing."""
        order = self._get_visible_order(session, order_id, current_user)
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError("Cannot cancel order in current status")
        return self._set_status(session, order, "cancelled")

    # -------- Helpers --------

    def _get_visible_order(
        self,
        session: Session,
        order_id: int,
        current_user: User,
    ) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        if current_user.role != "admin" and order.user_id != current_user.id:
            raise NotFoundError("Order not found")
        return order

    def _set_status(self, session: Session, order: Order, new_status: str) -> Order:
        try:
            order.status = new_status
            order.updated_at = utcnow()
            self.order_repo.update_order(session, order)
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(order)
        return order

    def _load_order_with_items(self, session: Session, order_id: int) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        session.refresh(order)
        items = self.order_repo.list_items_for_order(session, order_id)
        return self._build_order_with_items_dto(order, items)

    @staticmethod
    def _build_order_with_items_dto(
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            address=order.address,
            phone_number=order.phone_number,
            total_amount=order.total_amount,
            status=order.status,
            tracking_number=order.tracking_number,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[
                OrderItemRead(
                    id=it.id,
                    order_id=it.order_id,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    product_price=it.product_price,
                    quantity=it.quantity,
                    discount_amount=it.discount_amount,
                    image_url=it.image_url,
                    line_total=effective_line_total(
                        it.product_price, it.discount_amount, it.quantity
                    ),
                )
                for it in items
            ],
        )
