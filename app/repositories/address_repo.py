# app/repositories/address_repo.py
from sqlalchemy import update
from sqlmodel import Session, select

from app.models.address import Address


class AddressRepository:
    """Data access for user_addresses. Flush only; services commit."""

    def list_for_user(self, session: Session, user_id: int) -> list[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, address_id: int) -> Address | None:
        return session.get(Address, address_id)

    def get_for_user(
        self,
        session: Session,
        user_id: int,
        address_id: int,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.id == address_id,
            Address.user_id == user_id,
        )
        return session.exec(stmt).first()

    def newest_for_user(self, session: Session, user_id: int) -> Address | None:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.created_at.desc(), Address.id.desc())
            .limit(1)
        )
        return session.exec(stmt).first()

    def clear_default(
        self,
        session: Session,
        user_id: int,
        except_id: int | None = None,
    ) -> None:
        stmt = update(Address).where(Address.user_id == user_id)
        if except_id is not None:
            stmt = stmt.where(Address.id != except_id)
        session.exec(stmt.values(is_default=False))

    def save(self, session: Session, address: Address) -> Address:
        session.add(address)
        session.flush()
        session.refresh(address)
        return address

    def delete(self, session: Session, address: Address) -> None:
        session.delete(address)
        session.flush()
