# app/services/cart_service.py
from sqlmodel import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.cart import CartItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartItemRead,
    CartSummary,
)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence and active flag
      - enforce quantity <= stock_on_hand
      - snapshot the effective unit price (price - discount)
      - compute line totals and cart totals
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_valid_product(self, session: Session, product_id: int) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not product.is_active:
            raise ValidationError("Product is inactive")
        return product

    @staticmethod
    def _to_read(item: CartItem) -> CartItemRead:
        return CartItemRead(
            id=item.id,
            user_id=item.user_id,
            product_id=item.product_id,
            quantity=item.quantity,
            snapshot_price=item.snapshot_price,
            product_name=item.product_name,
            product_image_url=item.product_image_url,
            line_total=round(item.quantity * item.snapshot_price, 2),
            created_at=item.created_at,
        )

    def _get_line(self, session: Session, item_id: int) -> CartItem:
        item = self.cart_repo.get_by_id(session, item_id)
        if not item:
            raise NotFoundError("Item not found in cart")
        return item

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except Exception:
            session.rollback()
            raise

    # ---- public operations ----

    def get_cart_summary(self, session: Session, user_id: int) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with line_total)
          - total_quantity
          - total_price
        """
        items = self.cart_repo.list_for_user(session, user_id)

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = 0.0

        for it in items:
            line = self._to_read(it)
            total_qty += line.quantity
            total_price += line.line_total
            item_reads.append(line)

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=round(total_price, 2),
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: int,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a product to the user's cart.

        Rules:
          - product must exist and be active
          - quantity + existing_quantity <= stock_on_hand
        """
        product = self._get_valid_product(session, payload.product_id)
        existing = self.cart_repo.get_item(session, user_id, payload.product_id)

        new_qty = payload.quantity + (existing.quantity if existing else 0)
        if new_qty > product.stock_on_hand:
            raise ValidationError("Not enough stock available")

        if existing:
            existing.quantity = new_qty
            self.cart_repo.save(session, existing)
        else:
            self.cart_repo.save(
                session,
                CartItem(
                    user_id=user_id,
                    product_id=product.id,
                    quantity=payload.quantity,
                    snapshot_price=round(product.price - product.discount_amount, 2),
                    product_name=product.name,
                    product_image_url=product.image_url,
                ),
            )
        self._commit(session)

        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: int,
        product_id: int,
        payload: CartItemUpdate,
    ) -> CartSummary:
        product = self._get_valid_product(session, product_id)
        item = self.cart_repo.get_item(session, user_id, product_id)
        if not item:
            raise NotFoundError("Item not in cart")

        if payload.quantity > product.stock_on_hand:
            raise ValidationError("Not enough stock available")

        item.quantity = payload.quantity
        self.cart_repo.save(session, item)
        self._commit(session)

        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: int,
        product_id: int,
    ) -> CartSummary:
        item = self.cart_repo.get_item(session, user_id, product_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        self.cart_repo.delete(session, item)
        self._commit(session)
        return self.get_cart_summary(session, user_id)

    def get_line(self, session: Session, item_id: int) -> CartItemRead:
        """Single cart line by its id; ownership is checked by the route guard."""
        return self._to_read(self._get_line(session, item_id))

    def remove_line(self, session: Session, item_id: int) -> CartSummary:
        """Remove a cart line by its id and return its owner's cart."""
        item = self._get_line(session, item_id)
        owner_id = item.user_id
        self.cart_repo.delete(session, item)
        self._commit(session)
        return self.get_cart_summary(session, owner_id)

    def clear_cart(self, session: Session, user_id: int) -> CartSummary:
        self.cart_repo.clear_for_user(session, user_id)
        self._commit(session)
        return CartSummary(items=[], total_quantity=0, total_price=0.0)
