# tests/test_core.py
import asyncio

import pytest
from starlette.requests import Request

from app.core.errors import (
    AccountLockedError,
    AppError,
    AuthError,
    ConflictError,
    ErrorKind,
    ForbiddenError,
    InternalError,
    InvalidCodeError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.core.error_handlers import app_error_handler
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_opaque_token,
    hash_password,
    verify_password,
)


@pytest.mark.parametrize(
    "error_cls, kind, status_code",
    [
        (ValidationError, ErrorKind.VALIDATION, 400),
        (InvalidCodeError, ErrorKind.INVALID_CODE, 400),
        (InvalidStateError, ErrorKind.INVALID_STATE, 400),
        (AuthError, ErrorKind.AUTH, 401),
        (AccountLockedError, ErrorKind.ACCOUNT_LOCKED, 401),
        (ForbiddenError, ErrorKind.FORBIDDEN, 403),
        (NotFoundError, ErrorKind.NOT_FOUND, 404),
        (ConflictError, ErrorKind.CONFLICT, 409),
        (InternalError, ErrorKind.INTERNAL, 500),
    ],
)
def test_error_kinds_map_to_status(error_cls, kind, status_code):
    err = error_cls("boom")
    assert isinstance(err, AppError)
    assert err.kind is kind
    assert err.status_code == status_code
    assert err.message == "boom"


def test_lockout_is_not_a_plain_auth_error():
    assert not isinstance(AccountLockedError(), AuthError)


def test_internal_error_message_hidden_outside_development():
    request = Request({"type": "http", "method": "GET", "path": "/x", "headers": [], "query_string": b""})
    response = asyncio.run(app_error_handler(request, InternalError("db password leaked")))
    assert response.status_code == 500
    assert b"db password leaked" not in response.body


def test_password_hashing():
    hashed = hash_password("long-enough")
    assert hashed != "long-enough"
    assert verify_password("long-enough", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("long-enough", None)


def test_access_token_claims():
    token = create_access_token(user_id=7, email="a@example.com", full_name="A", role="admin")
    claims = decode_access_token(token)
    assert claims["sub"] == "7"
    assert claims["userId"] == 7
    assert claims["role"] == "admin"
    assert claims["exp"] > claims["iat"]


def test_expired_and_tampered_tokens():
    expired = create_access_token(
        user_id=7, email="a@example.com", full_name="A", role="user", expires_minutes=-1
    )
    with pytest.raises(AuthError, match="expired"):
        decode_access_token(expired)

    with pytest.raises(AuthError, match="Invalid token"):
        header, payload, _ = expired.split(".")
        decode_access_token(f"{header}.{payload}.not-the-signature")


def test_opaque_tokens_are_random_hex():
    a, b = generate_opaque_token(), generate_opaque_token()
    assert a != b
    assert len(a) == 64
    int(a, 16)
