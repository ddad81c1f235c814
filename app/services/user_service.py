# app/services/user_service.py
from sqlmodel import Session

from app.core.errors import ConflictError, NotFoundError
from app.core.security import utcnow
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserUpdate, UserRoleUpdate


class UserService:
    """
    Business logic for User profiles.

    Responsibilities:
      - self-service profile edits (name, email)
      - admin listing, lookup and role changes
      - keep email unique across accounts
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.

        Raises:
            ConflictError: if the new email belongs to another account.
        """
        try:
            # EmailStr lowercases the domain, matching how emails are stored
            email = str(payload.email) if payload.email is not None else None
            if email is not None and email != current_user.email:
                other = self.repo.get_by_email(session, email)
                if other is not None and other.id != current_user.id:
                    raise ConflictError("Email is already in use")
                current_user.email = email

            if payload.full_name is not None:
                current_user.full_name = payload.full_name

            current_user.updated_at = utcnow()
            self.repo.save(session, current_user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(current_user)
        return current_user

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list_users(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: int) -> User:
        """
        Get a user by id (admin only).

        Raises:
            NotFoundError: if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_role(
        self,
        session: Session,
        user_id: int,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        try:
            user.role = payload.role
            user.updated_at = utcnow()
            self.repo.save(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise
        session.refresh(user)
        return user
