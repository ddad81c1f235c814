# app/models/token.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class RefreshToken(SQLModel, table=True):
    """
    Long-lived opaque refresh token.

    Usable only while not revoked and before expires_at. Tokens are
    revoked (logout, rotation, password reset), never deleted.
    """

    __tablename__ = "refresh_tokens"

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    token: str = Field(
        unique=True,
        index=True,
        max_length=128,
    )

    expires_at: datetime = Field(description="Expiry timestamp (UTC)")

    revoked: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
