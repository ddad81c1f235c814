# app/repositories/product_repo.py
from sqlmodel import Session

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations.
    - No FastAPI, no business logic, no commits.
    """

    def get_by_id(self, session: Session, product_id: int) -> Product | None:
        return session.get(Product, product_id)

    def save(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        session.refresh(product)
        return product
