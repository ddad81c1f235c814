# tests/conftest.py
import os

# Settings are read once and cached; set the test environment before any
# app module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REFRESH_TOKEN_RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.core.otp_client import APPROVED, get_otp_gateway
from app.core.security import create_access_token, hash_password
from app.database import create_db_and_tables, init_engine
from app.main import app
from app.models.product import Product
from app.models.user import User
from app.repositories.token_repo import RefreshTokenRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.token_service import TokenService

PASSWORD = "correct-horse"


class FakeOTPGateway:
    """
    In-memory stand-in for Twilio Verify.

    A code is approved only if it matches the one registered for the phone.
    """

    def __init__(self):
        self.codes: dict[str, str] = {}
        self.sent: list[str] = []

    def send_verification(self, phone_number: str) -> str:
        self.sent.append(phone_number)
        return "pending"

    def check_verification(self, phone_number: str, code: str) -> str:
        if self.codes.get(phone_number) == code:
            return APPROVED
        return "pending"


@pytest.fixture
def engine():
    engine = init_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def otp_gateway():
    return FakeOTPGateway()


@pytest.fixture
def mailer():
    sent: list[tuple[str, str]] = []

    def _mailer(to_email: str, token: str) -> None:
        sent.append((to_email, token))

    _mailer.sent = sent
    return _mailer


@pytest.fixture
def token_service():
    return TokenService(RefreshTokenRepository(), sleep=lambda seconds: None)


@pytest.fixture
def auth_service(token_service, otp_gateway, mailer):
    return AuthService(
        UserRepository(),
        token_service,
        otp_gateway,
        reset_mailer=mailer,
    )


@pytest.fixture
def client(engine, otp_gateway):
    app.dependency_overrides[get_otp_gateway] = lambda: otp_gateway
    # No context manager: the lifespan would re-create the engine
    yield TestClient(app)
    app.dependency_overrides.clear()


# -------- Data factories --------
#
# Each factory commits in its own short session and returns a detached
# object, so no transaction stays open on the shared in-memory
# connection while requests run.


def _persist(engine, obj):
    with Session(engine, expire_on_commit=False) as s:
        s.add(obj)
        s.commit()
        s.refresh(obj)
        s.expunge(obj)
    return obj


@pytest.fixture
def make_user(engine):
    counter = {"n": 0}

    def _make_user(role: str = "user", password: str | None = PASSWORD, **overrides) -> User:
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            full_name=f"User {n}",
            email=f"user{n}@example.com",
            phone_number=f"+2126000001{n:02d}",
            password_hash=hash_password(password) if password else None,
            role=role,
        )
        fields.update(overrides)
        return _persist(engine, User(**fields))

    return _make_user


@pytest.fixture
def make_product(engine):
    def _make_product(**overrides) -> Product:
        fields = dict(
            name="Chocolate cake",
            price=20.0,
            discount_amount=2.0,
            stock_on_hand=10,
            image_url="https://cdn.example.com/cake.png",
        )
        fields.update(overrides)
        return _persist(engine, Product(**fields))

    return _make_product


def bearer(user: User) -> dict[str, str]:
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
    )
    return {"Authorization": f"Bearer {token}"}
