# app/repositories/user_repo.py
from datetime import datetime

from sqlalchemy import or_, update
from sqlmodel import Session, select

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic

    NOTE:
      - No commits here; the calling service owns the transaction.
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def get_by_phone(self, session: Session, phone_number: str) -> User | None:
        stmt = select(User).where(User.phone_number == phone_number)
        return session.exec(stmt).first()

    def exists_with_email_or_phone(
        self,
        session: Session,
        email: str,
        phone_number: str,
    ) -> bool:
        stmt = select(User.id).where(
            or_(User.email == email, User.phone_number == phone_number)
        )
        return session.exec(stmt).first() is not None

    def get_by_valid_reset_token(
        self,
        session: Session,
        token: str,
        now: datetime,
    ) -> User | None:
        """Return the user owning `token` if it has not expired yet."""
        stmt = select(User).where(
            User.reset_token == token,
            User.reset_token_expires > now,
        )
        return session.exec(stmt).first()

    def list_users(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        """
        Paginated user listing.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
        """
        stmt = select(User).order_by(User.id).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    # ----- Writes (flush only) -----

    def add(self, session: Session, user: User) -> User:
        """Insert a new User and populate its primary key."""
        session.add(user)
        session.flush()
        session.refresh(user)
        return user

    def save(self, session: Session, user: User) -> User:
        """Flush pending changes of an existing User."""
        session.add(user)
        session.flush()
        return user

    def increment_login_attempts(self, session: Session, user_id: int) -> int:
        """
        Atomically bump the failed-login counter and return the new value.
        """
        session.exec(
            update(User)
            .where(User.id == user_id)
            .values(login_attempts=User.login_attempts + 1)
        )
        stmt = select(User.login_attempts).where(User.id == user_id)
        return int(session.exec(stmt).one())
