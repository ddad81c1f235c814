# app/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.core.otp_client import OTPGateway, get_otp_gateway
from app.database import get_session
from app.models.user import User
from app.repositories.token_repo import RefreshTokenRepository
from app.repositories.user_repo import UserRepository
from app.schemas.auth import (
    AuthSession,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    OTPSent,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendOTPRequest,
    TokenPair,
    VerifyOTPRequest,
)
from app.schemas.common import Envelope, MessageResponse, message, ok
from app.schemas.user import UserRead
from app.services.auth_service import AuthService
from app.services.token_service import TokenService

router = APIRouter(prefix="/auth", tags=["Auth"])

user_repo = UserRepository()
token_service = TokenService(RefreshTokenRepository())


def get_auth_service(gateway: OTPGateway = Depends(get_otp_gateway)) -> AuthService:
    """AuthService wired to the current OTP gateway (overridable in tests)."""
    return AuthService(user_repo, token_service, gateway)


# -------- Registration & login --------


@router.post(
    "/register",
    response_model=Envelope[AuthSession],
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Create a password account and return a token pair.
    """
    return ok(
        service.register(
            session,
            full_name=payload.full_name,
            email=payload.email,
            phone_number=payload.phone_number,
            password=payload.password,
        )
    )


@router.post("/login", response_model=Envelope[AuthSession])
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Log in with phone + password.

    When `firebase_uid` is posted, the phone number was already verified by
    the external identity provider and no password is checked.
    """
    if payload.firebase_uid:
        return ok(
            service.login_via_external_identity(
                session, payload.firebase_uid, payload.phone_number
            )
        )
    return ok(service.login(session, payload.phone_number, payload.password))


# -------- OTP --------


@router.post("/send-otp", response_model=Envelope[OTPSent])
def send_otp(
    payload: SendOTPRequest,
    service: AuthService = Depends(get_auth_service),
):
    return ok(service.send_otp(payload.phone_number))


@router.post("/verify-otp", response_model=Envelope[AuthSession])
def verify_otp(
    payload: VerifyOTPRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Verify an OTP code; unknown phone numbers are registered on the fly
    (full_name and email required).
    """
    return ok(
        service.verify_otp(
            session,
            payload.phone_number,
            payload.code,
            full_name=payload.full_name,
            email=payload.email,
        )
    )


# -------- Sessions --------


@router.post("/refresh-token", response_model=Envelope[TokenPair])
def refresh_token(
    payload: RefreshRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """Rotate a refresh token. The presented token cannot be used again."""
    return ok(service.refresh(session, payload.refresh_token))


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: LogoutRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    service.logout(session, payload.refresh_token)
    return message("Logged out successfully")


@router.get("/check-token", response_model=Envelope[UserRead])
def check_token(current_user: User = Depends(require_auth)):
    """Confirm the bearer token is valid and return its user."""
    return ok(current_user)


# -------- Passwords --------


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    return message(service.forgot_password(session, payload.email))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Set a new password with a reset token. Every refresh token of the user
    is revoked.
    """
    service.reset_password(session, payload.token, payload.password)
    return message("Password has been reset successfully")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(
        session,
        current_user,
        payload.current_password,
        payload.new_password,
    )
    return message("Password changed successfully")
