# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user account.

    Identity:
      - id: numeric primary key (carried in access tokens)
      - uid: external identity string (generated, or set by a federated login)

    Credentials:
      - password_hash is NULL for accounts created through OTP.

    Lifecycle:
      - account_status: "active" | "inactive" (locked)
      - login_attempts counts consecutive wrong passwords
    """

    __tablename__ = "users"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    uid: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        unique=True,
        index=True,
        max_length=128,
        description="External identity (generated or federated)",
    )

    full_name: str = Field(
        max_length=100,
        description="Customer display name",
    )

    email: str = Field(
        unique=True,
        index=True,
        max_length=255,
    )

    phone_number: str = Field(
        unique=True,
        index=True,
        max_length=20,
        description="E.164 phone number",
    )

    password_hash: str | None = Field(
        default=None,
        description="bcrypt hash; NULL for OTP-only accounts",
    )

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    account_status: str = Field(
        default="active",
        index=True,
        description="active | inactive",
    )

    login_attempts: int = Field(
        default=0,
        ge=0,
        description="Consecutive failed password logins",
    )

    last_login: datetime | None = Field(default=None)

    reset_token: str | None = Field(
        default=None,
        index=True,
        max_length=128,
    )
    reset_token_expires: datetime | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )

    @property
    def is_active(self) -> bool:
        return self.account_status == "active"
