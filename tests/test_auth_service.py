# tests/test_auth_service.py
from datetime import timedelta

import pytest
from sqlmodel import select

from app.core.errors import (
    AccountLockedError,
    AuthError,
    ConflictError,
    InvalidCodeError,
    NotFoundError,
    ValidationError,
)
from app.core.security import decode_access_token, utcnow
from app.models.token import RefreshToken
from app.models.user import User
from app.services.auth_service import FORGOT_PASSWORD_MESSAGE

PHONE = "+212600000001"
OTP_PHONE = "+212600000002"


def register(auth_service, session, **overrides):
    fields = dict(
        full_name="Amina Idrissi",
        email="amina@example.com",
        phone_number=PHONE,
        password="s3cret-pass",
    )
    fields.update(overrides)
    return auth_service.register(session, **fields)


# -------- Registration & login --------


def test_register_returns_session_without_hash(auth_service, session):
    result = register(auth_service, session)

    assert result.user.email == "amina@example.com"
    assert result.user.role == "user"
    assert result.user.account_status == "active"
    assert result.user.uid
    assert "password_hash" not in result.user.model_dump()

    claims = decode_access_token(result.token)
    assert claims["sub"] == str(result.user.id)
    assert claims["userId"] == result.user.id
    assert claims["fullName"] == "Amina Idrissi"

    stored = session.exec(select(RefreshToken)).all()
    assert [t.token for t in stored] == [result.refresh_token]


def test_register_rolls_back_user_when_token_insert_fails(auth_service, session, monkeypatch):
    def boom(session, user_id):
        raise RuntimeError("token store down")

    monkeypatch.setattr(auth_service.token_service, "issue_refresh_token", boom)

    with pytest.raises(RuntimeError):
        register(auth_service, session)

    assert session.exec(select(User)).all() == []
    assert session.exec(select(RefreshToken)).all() == []


def test_register_then_login(auth_service, session):
    register(auth_service, session)

    result = auth_service.login(session, PHONE, "s3cret-pass")

    assert result.user.phone_number == PHONE
    assert result.user.last_login is not None


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "amina@example.com", "phone_number": "+212600000099"},
        {"email": "other@example.com", "phone_number": PHONE},
    ],
)
def test_register_duplicate_email_or_phone_conflicts(auth_service, session, overrides):
    register(auth_service, session)

    with pytest.raises(ConflictError):
        register(auth_service, session, **overrides)

    assert len(session.exec(select(User)).all()) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"full_name": None},
        {"password": ""},
        {"password": "short"},
        {"email": "not-an-email"},
    ],
)
def test_register_rejects_invalid_input(auth_service, session, overrides):
    with pytest.raises(ValidationError):
        register(auth_service, session, **overrides)


def test_login_unknown_phone_is_invalid_credentials(auth_service, session):
    with pytest.raises(AuthError) as exc_info:
        auth_service.login(session, "+212699999999", "whatever1")
    assert exc_info.value.message == "Invalid credentials"


def test_login_without_password_hash_is_mismatch(auth_service, session):
    session.add(User(full_name="Otp Only", email="otp@example.com", phone_number=PHONE))
    session.commit()

    with pytest.raises(AuthError):
        auth_service.login(session, PHONE, "anything-goes")


def test_five_failures_lock_account_even_for_right_password(auth_service, session):
    register(auth_service, session)

    for _ in range(4):
        with pytest.raises(AuthError):
            auth_service.login(session, PHONE, "wrong-password")

    with pytest.raises(AccountLockedError):
        auth_service.login(session, PHONE, "wrong-password")

    with pytest.raises(AccountLockedError):
        auth_service.login(session, PHONE, "s3cret-pass")

    user = session.exec(select(User).where(User.phone_number == PHONE)).one()
    session.refresh(user)
    assert user.account_status == "inactive"
    assert user.login_attempts == 5


def test_successful_login_resets_failure_counter(auth_service, session):
    register(auth_service, session)
    for _ in range(3):
        with pytest.raises(AuthError):
            auth_service.login(session, PHONE, "wrong-password")

    auth_service.login(session, PHONE, "s3cret-pass")

    user = session.exec(select(User).where(User.phone_number == PHONE)).one()
    assert user.login_attempts == 0


# -------- Federated login --------


def test_external_identity_login_updates_uid(auth_service, session):
    registered = register(auth_service, session)

    result = auth_service.login_via_external_identity(session, "firebase-uid-1", PHONE)

    assert result.user.id == registered.user.id
    assert result.user.uid == "firebase-uid-1"
    assert result.user.last_login is not None


def test_external_identity_login_unknown_phone(auth_service, session):
    with pytest.raises(NotFoundError):
        auth_service.login_via_external_identity(session, "firebase-uid-1", PHONE)


def test_external_identity_login_locked_account(auth_service, session):
    session.add(
        User(
            full_name="Locked",
            email="locked@example.com",
            phone_number=PHONE,
            account_status="inactive",
        )
    )
    session.commit()

    with pytest.raises(AccountLockedError):
        auth_service.login_via_external_identity(session, "firebase-uid-1", PHONE)


# -------- OTP --------


def test_send_otp_validates_phone(auth_service, otp_gateway):
    with pytest.raises(ValidationError):
        auth_service.send_otp("0600000002")

    sent = auth_service.send_otp(OTP_PHONE)

    assert sent.status == "pending"
    assert sent.phone_number == OTP_PHONE
    assert sent.validity_period == "5 minutes"
    assert otp_gateway.sent == [OTP_PHONE]


def test_verify_otp_approved_creates_user(auth_service, otp_gateway, session):
    otp_gateway.codes[OTP_PHONE] = "123456"

    result = auth_service.verify_otp(
        session,
        OTP_PHONE,
        "123456",
        full_name="Youssef",
        email="youssef@example.com",
    )

    assert result.user.phone_number == OTP_PHONE
    user = session.get(User, result.user.id)
    assert user.password_hash is None
    assert user.last_login is not None


def test_verify_otp_denied_creates_nothing(auth_service, otp_gateway, session):
    otp_gateway.codes[OTP_PHONE] = "123456"

    with pytest.raises(InvalidCodeError):
        auth_service.verify_otp(
            session,
            OTP_PHONE,
            "000000",
            full_name="Youssef",
            email="youssef@example.com",
        )

    assert session.exec(select(User)).all() == []


def test_verify_otp_new_phone_requires_name_and_email(auth_service, otp_gateway, session):
    otp_gateway.codes[OTP_PHONE] = "123456"

    with pytest.raises(ValidationError):
        auth_service.verify_otp(session, OTP_PHONE, "123456")

    assert session.exec(select(User)).all() == []


def test_verify_otp_rejects_email_in_use(auth_service, otp_gateway, session):
    register(auth_service, session, email="taken@example.com")
    otp_gateway.codes[OTP_PHONE] = "123456"

    with pytest.raises(ConflictError):
        auth_service.verify_otp(
            session,
            OTP_PHONE,
            "123456",
            full_name="Youssef",
            email="taken@example.com",
        )

    assert session.exec(select(User).where(User.phone_number == OTP_PHONE)).first() is None


def test_verify_otp_known_phone_reuses_user(auth_service, otp_gateway, session):
    registered = register(auth_service, session)
    otp_gateway.codes[PHONE] = "654321"

    result = auth_service.verify_otp(session, PHONE, "654321")

    assert result.user.id == registered.user.id
    assert len(session.exec(select(User)).all()) == 1


def test_verify_otp_rolls_back_new_user_when_token_insert_fails(
    auth_service, otp_gateway, session, monkeypatch
):
    otp_gateway.codes[OTP_PHONE] = "123456"

    def boom(session, user_id):
        raise RuntimeError("token store down")

    monkeypatch.setattr(auth_service.token_service, "issue_refresh_token", boom)

    with pytest.raises(RuntimeError):
        auth_service.verify_otp(
            session,
            OTP_PHONE,
            "123456",
            full_name="Youssef",
            email="youssef@example.com",
        )

    assert session.exec(select(User)).all() == []


# -------- Refresh & logout --------


def test_refresh_rotates_token_once(auth_service, session):
    first = register(auth_service, session)

    rotated = auth_service.refresh(session, first.refresh_token)

    assert rotated.refresh_token != first.refresh_token
    with pytest.raises(AuthError):
        auth_service.refresh(session, first.refresh_token)

    # The new token still works
    auth_service.refresh(session, rotated.refresh_token)


def test_refresh_requires_token(auth_service, session):
    with pytest.raises(AuthError):
        auth_service.refresh(session, None)
    with pytest.raises(AuthError):
        auth_service.refresh(session, "does-not-exist")


def test_refresh_rejects_expired_token(auth_service, session):
    first = register(auth_service, session)
    stored = session.exec(
        select(RefreshToken).where(RefreshToken.token == first.refresh_token)
    ).one()
    stored.expires_at = utcnow() - timedelta(seconds=1)
    session.add(stored)
    session.commit()

    with pytest.raises(AuthError):
        auth_service.refresh(session, first.refresh_token)


def test_refresh_rejects_locked_owner(auth_service, session):
    first = register(auth_service, session)
    user = session.get(User, first.user.id)
    user.account_status = "inactive"
    session.add(user)
    session.commit()

    with pytest.raises(AccountLockedError):
        auth_service.refresh(session, first.refresh_token)


def test_logout_is_idempotent_and_blocks_refresh(auth_service, session):
    first = register(auth_service, session)

    auth_service.logout(session, first.refresh_token)
    auth_service.logout(session, first.refresh_token)
    auth_service.logout(session, None)

    with pytest.raises(AuthError):
        auth_service.refresh(session, first.refresh_token)


# -------- Passwords --------


def test_change_password(auth_service, session):
    first = register(auth_service, session)
    user = session.get(User, first.user.id)

    with pytest.raises(AuthError):
        auth_service.change_password(session, user, "wrong-current", "new-password-1")
    with pytest.raises(ValidationError):
        auth_service.change_password(session, user, "s3cret-pass", "short")

    auth_service.change_password(session, user, "s3cret-pass", "new-password-1")

    auth_service.login(session, PHONE, "new-password-1")
    with pytest.raises(AuthError):
        auth_service.login(session, PHONE, "s3cret-pass")


def test_forgot_password_same_answer_for_unknown_email(auth_service, session, mailer):
    assert auth_service.forgot_password(session, "nobody@example.com") == FORGOT_PASSWORD_MESSAGE
    assert mailer.sent == []

    with pytest.raises(ValidationError):
        auth_service.forgot_password(session, "")


def test_forgot_password_stores_token_and_mails_it(auth_service, session, mailer):
    first = register(auth_service, session)

    answer = auth_service.forgot_password(session, "amina@example.com")

    assert answer == FORGOT_PASSWORD_MESSAGE
    user = session.get(User, first.user.id)
    assert user.reset_token
    assert len(user.reset_token) == 64
    assert user.reset_token_expires is not None
    assert mailer.sent == [("amina@example.com", user.reset_token)]


def test_forgot_password_finds_mixed_case_address(auth_service, session, mailer):
    first = register(auth_service, session, email="Sara@Example.COM")
    assert first.user.email == "Sara@example.com"

    auth_service.forgot_password(session, "Sara@Example.COM")

    user = session.get(User, first.user.id)
    assert user.reset_token
    assert mailer.sent == [("Sara@example.com", user.reset_token)]


def test_forgot_password_mail_failure_is_not_surfaced(auth_service, session):
    register(auth_service, session)

    def broken_mailer(to_email, token):
        raise OSError("smtp down")

    auth_service.reset_mailer = broken_mailer

    assert auth_service.forgot_password(session, "amina@example.com") == FORGOT_PASSWORD_MESSAGE


def test_reset_password_revokes_all_refresh_tokens(auth_service, session, mailer):
    first = register(auth_service, session)
    second = auth_service.login(session, PHONE, "s3cret-pass")
    auth_service.forgot_password(session, "amina@example.com")
    reset_token = mailer.sent[0][1]

    auth_service.reset_password(session, reset_token, "brand-new-pass")

    for old in (first.refresh_token, second.refresh_token):
        with pytest.raises(AuthError):
            auth_service.refresh(session, old)

    user = session.get(User, first.user.id)
    assert user.reset_token is None
    assert user.reset_token_expires is None
    auth_service.login(session, PHONE, "brand-new-pass")

    # A reset token works only once
    with pytest.raises(AuthError):
        auth_service.reset_password(session, reset_token, "another-pass-1")


def test_reset_password_rejects_expired_token(auth_service, session, mailer):
    first = register(auth_service, session)
    auth_service.forgot_password(session, "amina@example.com")
    user = session.get(User, first.user.id)
    user.reset_token_expires = utcnow() - timedelta(minutes=1)
    session.add(user)
    session.commit()

    with pytest.raises(AuthError):
        auth_service.reset_password(session, mailer.sent[0][1], "brand-new-pass")


def test_reset_password_checks_length(auth_service, session):
    with pytest.raises(ValidationError):
        auth_service.reset_password(session, "some-token", "short")
