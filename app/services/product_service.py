# app/services/product_service.py
from sqlmodel import Session

from app.core.errors import NotFoundError
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductUpdate


class ProductService:
    """
    Minimal catalog maintenance: read one product, admin create/update.

    Listing and search are out of scope.
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def get_product(self, session: Session, product_id: int) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        try:
            product = self.repo.save(session, Product(**payload.model_dump()))
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(product)
        return product

    def update_product(
        self,
        session: Session,
        product_id: int,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update; only fields present in the payload change.
        """
        product = self.get_product(session, product_id)
        try:
            for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(product, field, value)
            self.repo.save(session, product)
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(product)
        return product
