# app/repositories/cart_repo.py
from sqlalchemy import delete
from sqlmodel import Session, select

from app.models.cart import CartItem


class CartRepository:
    """Data access for cart_items. Flush only; services commit."""

    # Get items for a user
    def list_for_user(self, session: Session, user_id: int) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.id)
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, item_id: int) -> CartItem | None:
        return session.get(CartItem, item_id)

    def get_item(
        self, session: Session, user_id: int, product_id: int
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def save(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear_for_user(self, session: Session, user_id: int) -> int:
        """Delete every cart row of the user; returns the number removed."""
        result = session.exec(delete(CartItem).where(CartItem.user_id == user_id))
        return result.rowcount
