# app/core/security.py
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings
from app.core.errors import AuthError

INVALID_TOKEN_MESSAGE = "Invalid token. Please log in again."
EXPIRED_TOKEN_MESSAGE = "Your token has expired. Please log in again."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache
def _pwd_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.BCRYPT_ROUNDS,
    )


def hash_password(password: str) -> str:
    return _pwd_context().hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Check a plain password against a stored bcrypt hash.

    Accounts created through OTP have no hash; they never match.
    """
    if not password or not password_hash:
        return False
    return _pwd_context().verify(password, password_hash)


def generate_opaque_token(num_bytes: int = 32) -> str:
    """Random hex string used for refresh and password reset tokens."""
    return secrets.token_hex(num_bytes)


def create_access_token(
    *,
    user_id: int,
    email: str,
    full_name: str,
    role: str,
    expires_minutes: int | None = None,
) -> str:
    """
    Sign a short-lived access token.

    Claims:
      - sub / userId: user primary key
      - email, fullName, role: identity shown to the frontend
      - iat / exp: issue and expiry time (UTC)
    """
    settings = get_settings()
    minutes = (
        settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    )
    now = utcnow()
    claims = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "fullName": full_name,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (signature + exp).

    Raises:
        AuthError: with a distinct message for expired vs. malformed tokens.
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except ExpiredSignatureError:
        raise AuthError(EXPIRED_TOKEN_MESSAGE)
    except JWTError:
        raise AuthError(INVALID_TOKEN_MESSAGE)
