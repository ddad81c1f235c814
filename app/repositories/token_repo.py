# app/repositories/token_repo.py
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.token import RefreshToken


class RefreshTokenRepository:
    """
    Data access layer for refresh_tokens.

    NOTE:
      - No commits here; token writes are part of larger units of work
        (registration, OTP verification, rotation, password reset).
    """

    def add(self, session: Session, token: RefreshToken) -> RefreshToken:
        session.add(token)
        session.flush()
        return token

    def get_active(
        self,
        session: Session,
        token: str,
        now: datetime,
    ) -> RefreshToken | None:
        """Return the token row if it is neither revoked nor expired."""
        stmt = select(RefreshToken).where(
            RefreshToken.token == token,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > now,
        )
        return session.exec(stmt).first()

    def revoke(self, session: Session, token: str) -> int:
        """
        Revoke a single token if it is still live.

        Returns:
            Number of rows actually revoked (0 or 1). A 0 means another
            request revoked it first.
        """
        result = session.exec(
            update(RefreshToken)
            .where(
                RefreshToken.token == token,
                RefreshToken.revoked == False,  # noqa: E712
            )
            .values(revoked=True)
        )
        return result.rowcount

    def revoke_all_for_user(self, session: Session, user_id: int) -> int:
        result = session.exec(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked == False,  # noqa: E712
            )
            .values(revoked=True)
        )
        return result.rowcount
