# app/schemas/auth.py
from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.schemas.user import UserRead


# -------- Requests --------
#
# Fields are optional at the schema level on purpose: the auth service
# owns the "required" checks so that direct callers and HTTP callers get
# the same ValidationError messages.


class RegisterRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    password: str | None = None


class LoginRequest(SQLModel):
    """
    Password login, or federated login when firebase_uid is present.
    """

    model_config = ConfigDict(extra="forbid")

    phone_number: str | None = None
    password: str | None = None
    firebase_uid: str | None = None


class SendOTPRequest(SQLModel):
    phone_number: str | None = None


class VerifyOTPRequest(SQLModel):
    phone_number: str | None = None
    code: str | None = None
    full_name: str | None = None
    email: str | None = None


class RefreshRequest(SQLModel):
    refresh_token: str | None = None


class LogoutRequest(SQLModel):
    refresh_token: str | None = None


class ChangePasswordRequest(SQLModel):
    current_password: str | None = None
    new_password: str | None = None


class ForgotPasswordRequest(SQLModel):
    email: str | None = None


class ResetPasswordRequest(SQLModel):
    token: str | None = None
    password: str | None = None


# -------- Responses --------


class TokenPair(SQLModel):
    token: str
    refresh_token: str


class AuthSession(TokenPair):
    """Returned by every successful login / registration."""

    user: UserRead


class OTPSent(SQLModel):
    status: str
    phone_number: str
    validity_period: str
