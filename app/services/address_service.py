# app/services/address_service.py
from sqlmodel import Session

from app.core.errors import NotFoundError
from app.core.security import utcnow
from app.models.address import Address
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.schemas.address import AddressWrite

DEFAULT_TITLE = "Home"


class AddressService:
    """
    Saved shipping addresses.

    Invariant: at most one default address per user. Each write runs in
    its own transaction so the default flag never ends up on two rows.

    Admins may read and edit any address; the default rule then applies
    to the address owner's book, not the admin's.
    """

    def __init__(self, repo: AddressRepository):
        self.repo = repo

    def list_addresses(self, session: Session, user_id: int) -> list[Address]:
        """Default address first, then newest first."""
        return self.repo.list_for_user(session, user_id)

    def get_address(self, session: Session, address_id: int, current_user: User) -> Address:
        if current_user.role == "admin":
            address = self.repo.get_by_id(session, address_id)
        else:
            address = self.repo.get_for_user(session, current_user.id, address_id)
        if not address:
            raise NotFoundError("Address not found")
        return address

    def create_address(
        self,
        session: Session,
        user_id: int,
        payload: AddressWrite,
    ) -> Address:
        try:
            if payload.is_default:
                self.repo.clear_default(session, user_id)

            address = self.repo.save(
                session,
                Address(
                    user_id=user_id,
                    title=payload.title or DEFAULT_TITLE,
                    street=payload.street,
                    city=payload.city,
                    additional_details=payload.additional_details,
                    is_default=payload.is_default,
                    latitude=payload.latitude,
                    longitude=payload.longitude,
                    place_link=payload.place_link,
                ),
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(address)
        return address

    def update_address(
        self,
        session: Session,
        address_id: int,
        current_user: User,
        payload: AddressWrite,
    ) -> Address:
        """Replace every editable field of the address."""
        try:
            address = self.get_address(session, address_id, current_user)

            if payload.is_default:
                self.repo.clear_default(session, address.user_id, except_id=address.id)

            address.title = payload.title or DEFAULT_TITLE
            address.street = payload.street
            address.city = payload.city
            address.additional_details = payload.additional_details
            address.is_default = payload.is_default
            address.latitude = payload.latitude
            address.longitude = payload.longitude
            address.place_link = payload.place_link
            address.updated_at = utcnow()

            self.repo.save(session, address)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(address)
        return address

    def delete_address(self, session: Session, address_id: int, current_user: User) -> None:
        """
        Delete an address. If it was the default, the newest remaining
        address of the same owner becomes the default.
        """
        try:
            address = self.get_address(session, address_id, current_user)
            owner_id = address.user_id
            was_default = address.is_default
            self.repo.delete(session, address)

            if was_default:
                replacement = self.repo.newest_for_user(session, owner_id)
                if replacement is not None:
                    replacement.is_default = True
                    replacement.updated_at = utcnow()
                    self.repo.save(session, replacement)

            session.commit()
        except Exception:
            session.rollback()
            raise
