# app/services/auth_service.py
import logging
import re
from datetime import timedelta
from typing import Callable

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core import email_client
from app.core.config import Settings, get_settings
from app.core.errors import (
    AccountLockedError,
    AuthError,
    ConflictError,
    InvalidCodeError,
    NotFoundError,
    ValidationError,
)
from app.core.otp_client import APPROVED, OTPGateway
from app.core.security import (
    generate_opaque_token,
    hash_password,
    utcnow,
    verify_password,
)
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.auth import AuthSession, OTPSent, TokenPair
from app.schemas.user import UserRead
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_LOCKED_MESSAGE = (
    "Too many failed login attempts. Your account has been locked for "
    "security reasons. Please contact support."
)
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent"
)

_email_adapter = TypeAdapter(EmailStr)


def _smtp_reset_mailer(to_email: str, reset_token: str) -> None:
    if not email_client.is_configured():
        logger.info("SMTP not configured; password reset email to %s not sent", to_email)
        return
    email_client.send_password_reset_email(to_email, reset_token)


class AuthService:
    """
    Account and session workflows.

    Responsibilities:
      - registration (password or OTP based)
      - password login with lockout, federated login
      - refresh-token rotation and logout
      - password change / forgot / reset

    Every operation that writes runs as one unit of work on the given
    session: commit at the end, rollback on any exception.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        token_service: TokenService,
        otp_gateway: OTPGateway,
        settings: Settings | None = None,
        reset_mailer: Callable[[str, str], None] | None = None,
    ):
        self.user_repo = user_repo
        self.token_service = token_service
        self.otp_gateway = otp_gateway
        self.settings = settings or get_settings()
        self.reset_mailer = reset_mailer or _smtp_reset_mailer

    # -------- Validation helpers --------

    @staticmethod
    def _validated_email(email: str) -> str:
        try:
            return str(_email_adapter.validate_python(email.strip()))
        except PydanticValidationError:
            raise ValidationError("Invalid email format")

    def _validated_phone(self, phone_number: str | None) -> str:
        if not phone_number:
            raise ValidationError("Phone number is required")
        phone_number = phone_number.strip()
        if not re.match(self.settings.PHONE_NUMBER_PATTERN, phone_number):
            raise ValidationError(
                f"Invalid phone number format. Must match {self.settings.PHONE_NUMBER_PATTERN}"
            )
        return phone_number

    def _check_password_strength(self, password: str) -> None:
        minimum = self.settings.MIN_PASSWORD_LENGTH
        if len(password) < minimum:
            raise ValidationError(f"Password must be at least {minimum} characters long")

    @staticmethod
    def _auth_session(user: User, pair: TokenPair) -> AuthSession:
        return AuthSession(
            user=UserRead.model_validate(user, from_attributes=True),
            token=pair.token,
            refresh_token=pair.refresh_token,
        )

    @staticmethod
    def _stamp_login(user: User) -> None:
        now = utcnow()
        user.login_attempts = 0
        user.last_login = now
        user.updated_at = now

    # -------- Registration & login --------

    def register(
        self,
        session: Session,
        full_name: str | None,
        email: str | None,
        phone_number: str | None,
        password: str | None,
    ) -> AuthSession:
        """
        Create a password account and log it in.

        Raises:
            ValidationError: missing field, bad email, short password.
            ConflictError: email or phone already used.
        """
        if not (full_name and email and phone_number and password):
            raise ValidationError("All fields are required")

        full_name = full_name.strip()
        email = self._validated_email(email)
        phone_number = phone_number.strip()
        self._check_password_strength(password)

        try:
            if self.user_repo.exists_with_email_or_phone(session, email, phone_number):
                raise ConflictError("User with this email or phone number already exists")

            user = self.user_repo.add(
                session,
                User(
                    full_name=full_name,
                    email=email,
                    phone_number=phone_number,
                    password_hash=hash_password(password),
                ),
            )
            pair = self.token_service.issue_pair(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(user)
        logger.info("Registered user %s", user.id)
        return self._auth_session(user, pair)

    def login(
        self,
        session: Session,
        phone_number: str | None,
        password: str | None,
    ) -> AuthSession:
        """
        Password login by phone number.

        Five consecutive failures lock the account; locked accounts are
        refused before the password is even checked.
        """
        if not phone_number or not password:
            raise ValidationError("Phone number and password are required")

        user = self.user_repo.get_by_phone(session, phone_number.strip())
        if user is None:
            raise AuthError(INVALID_CREDENTIALS)

        if not user.is_active:
            raise AccountLockedError()

        if not verify_password(password, user.password_hash):
            self._record_failed_login(session, user)

        try:
            self._stamp_login(user)
            self.user_repo.save(session, user)
            pair = self.token_service.issue_pair(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(user)
        return self._auth_session(user, pair)

    def _record_failed_login(self, session: Session, user: User) -> None:
        """Count the failure, lock on the threshold, and always raise."""
        try:
            attempts = self.user_repo.increment_login_attempts(session, user.id)
            locked = attempts >= self.settings.MAX_LOGIN_ATTEMPTS
            if locked:
                user.account_status = "inactive"
                user.updated_at = utcnow()
                self.user_repo.save(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        if locked:
            logger.warning("User %s locked after %s failed logins", user.id, attempts)
            raise AccountLockedError(ACCOUNT_LOCKED_MESSAGE)
        raise AuthError(INVALID_CREDENTIALS)

    def login_via_external_identity(
        self,
        session: Session,
        external_uid: str | None,
        phone_number: str | None,
    ) -> AuthSession:
        """
        Log in a user already verified by an external identity provider.

        The stored uid follows the provider's uid; updating it and the
        last-login stamp are best effort and never block the login.
        """
        if not external_uid or not phone_number:
            raise ValidationError("External uid and phone number are required")

        user = self.user_repo.get_by_phone(session, phone_number.strip())
        if user is None:
            raise NotFoundError("User not found")

        if not user.is_active:
            raise AccountLockedError()

        if user.uid != external_uid:
            logger.info("Updating external uid for user %s", user.id)
            try:
                with session.begin_nested():
                    user.uid = external_uid
                    self.user_repo.save(session, user)
            except SQLAlchemyError as exc:
                logger.error("Error updating external uid for user %s: %s", user.id, exc)

        try:
            with session.begin_nested():
                self._stamp_login(user)
                self.user_repo.save(session, user)
        except SQLAlchemyError as exc:
            logger.error("Error updating last login for user %s: %s", user.id, exc)

        try:
            pair = self.token_service.issue_pair(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(user)
        return self._auth_session(user, pair)

    # -------- OTP --------

    def send_otp(self, phone_number: str | None) -> OTPSent:
        phone_number = self._validated_phone(phone_number)
        status = self.otp_gateway.send_verification(phone_number)
        return OTPSent(
            status=status,
            phone_number=phone_number,
            validity_period=self.settings.OTP_VALIDITY_PERIOD,
        )

    def verify_otp(
        self,
        session: Session,
        phone_number: str | None,
        code: str | None,
        full_name: str | None = None,
        email: str | None = None,
    ) -> AuthSession:
        """
        Check an OTP code, then log in (or register) the phone's owner.

        User creation, refresh-token insert and last-login stamp commit
        together; if any of them fails the new user is rolled back.
        """
        phone_number = self._validated_phone(phone_number)
        if not code:
            raise ValidationError("Phone number and code are required")

        status = self.otp_gateway.check_verification(phone_number, code.strip())
        if status != APPROVED:
            raise InvalidCodeError("Invalid OTP code")

        try:
            user = self.user_repo.get_by_phone(session, phone_number)
            if user is None:
                if not full_name or not email:
                    raise ValidationError(
                        "Full name and email are required for registration"
                    )
                email = self._validated_email(email)
                if self.user_repo.get_by_email(session, email) is not None:
                    raise ConflictError("User with this email already exists")

                user = self.user_repo.add(
                    session,
                    User(
                        full_name=full_name.strip(),
                        email=email,
                        phone_number=phone_number,
                    ),
                )
                logger.info("Created user %s from OTP verification", user.id)
            elif not user.is_active:
                raise AccountLockedError()

            self._stamp_login(user)
            self.user_repo.save(session, user)
            pair = self.token_service.issue_pair(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(user)
        return self._auth_session(user, pair)

    # -------- Sessions --------

    def refresh(self, session: Session, refresh_token: str | None) -> TokenPair:
        """
        Rotate a refresh token: the presented token is revoked and a new
        pair is issued. A token can be used once.
        """
        if not refresh_token:
            raise AuthError("Refresh token is required")

        try:
            stored = self.token_service.find_active(session, refresh_token)
            if stored is None:
                raise AuthError(INVALID_REFRESH_TOKEN)

            user = self.user_repo.get_by_id(session, stored.user_id)
            if user is None:
                raise AuthError("The user belonging to this token no longer exists.")
            if not user.is_active:
                raise AccountLockedError()

            # Conditional revoke: only one concurrent caller can win
            if not self.token_service.revoke(session, refresh_token):
                raise AuthError(INVALID_REFRESH_TOKEN)

            pair = self.token_service.issue_pair(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        return pair

    def logout(self, session: Session, refresh_token: str | None) -> None:
        """Revoke the refresh token if one is given. Always succeeds otherwise."""
        if not refresh_token:
            return
        try:
            self.token_service.revoke(session, refresh_token)
            session.commit()
        except Exception:
            session.rollback()
            raise

    # -------- Passwords --------

    def change_password(
        self,
        session: Session,
        user: User,
        current_password: str | None,
        new_password: str | None,
    ) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current and new password are required")
        self._check_password_strength(new_password)

        if not verify_password(current_password, user.password_hash):
            raise AuthError("Current password is incorrect")

        try:
            user.password_hash = hash_password(new_password)
            user.updated_at = utcnow()
            self.user_repo.save(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

    def forgot_password(self, session: Session, email: str | None) -> str:
        """
        Start a password reset.

        The answer is the same whether or not the email exists, so the
        endpoint cannot be used to enumerate accounts.
        """
        if not email:
            raise ValidationError("Email is required")

        try:
            lookup = self._validated_email(email)
        except ValidationError:
            lookup = email.strip()

        user = self.user_repo.get_by_email(session, lookup)
        if user is None:
            return FORGOT_PASSWORD_MESSAGE

        reset_token = generate_opaque_token()
        try:
            user.reset_token = reset_token
            user.reset_token_expires = utcnow() + timedelta(
                minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES
            )
            self.user_repo.save(session, user)
            session.commit()
        except Exception:
            session.rollback()
            raise

        # Best effort: the token is stored either way
        try:
            self.reset_mailer(user.email, reset_token)
        except Exception:
            logger.exception("Failed to send password reset email to user %s", user.id)

        return FORGOT_PASSWORD_MESSAGE

    def reset_password(
        self,
        session: Session,
        token: str | None,
        new_password: str | None,
    ) -> None:
        """
        Finish a password reset and sign the user out everywhere.
        """
        if not token or not new_password:
            raise ValidationError("Token and new password are required")
        self._check_password_strength(new_password)

        try:
            user = self.user_repo.get_by_valid_reset_token(session, token, utcnow())
            if user is None:
                raise AuthError("Invalid or expired token")

            user.password_hash = hash_password(new_password)
            user.reset_token = None
            user.reset_token_expires = None
            user.updated_at = utcnow()
            self.user_repo.save(session, user)

            revoked = self.token_service.revoke_all(session, user.id)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Password reset for user %s; %s refresh tokens revoked", user.id, revoked)
