# app/schemas/user.py
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. Anonymous callers have no token and no role.
Role = Literal["user", "admin"]
AccountStatus = Literal["active", "inactive"]


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class UserRead(SQLModel):
    """
    Public user view returned to clients.

    The password hash and reset token never leave the server.
    """

    id: int
    uid: str
    full_name: str
    email: str
    phone_number: str
    role: Role
    account_status: AccountStatus
    last_login: datetime | None = None
    created_at: datetime


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role
