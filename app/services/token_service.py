# app/services/token_service.py
import logging
import time
from datetime import timedelta

from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.core.config import Settings, get_settings
from app.core.security import create_access_token, generate_opaque_token, utcnow
from app.models.token import RefreshToken
from app.models.user import User
from app.repositories.token_repo import RefreshTokenRepository
from app.schemas.auth import TokenPair

logger = logging.getLogger(__name__)

# Fragments of driver messages that mean "another transaction holds the lock"
LOCK_CONTENTION_MARKERS = (
    "lock wait timeout",
    "lock timeout",
    "database is locked",
    "deadlock",
)


def is_lock_contention(exc: OperationalError) -> bool:
    text = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in text for marker in LOCK_CONTENTION_MARKERS)


class TokenService:
    """
    Issues access tokens and persists refresh tokens.

    Responsibilities:
      - sign access tokens from the user's identity claims
      - insert refresh tokens, retrying on lock contention
      - look up, rotate and revoke refresh tokens

    Nothing here commits; callers decide the transaction boundary.
    """

    def __init__(
        self,
        repo: RefreshTokenRepository,
        settings: Settings | None = None,
        sleep=time.sleep,
    ):
        self.repo = repo
        self.settings = settings or get_settings()
        self._sleep = sleep

    # ---- access tokens ----

    def create_access_token(self, user: User) -> str:
        return create_access_token(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
        )

    # ---- refresh tokens ----

    def _insert(self, session: Session, token: RefreshToken) -> None:
        # Savepoint: a failed attempt must not poison the outer transaction
        with session.begin_nested():
            self.repo.add(session, token)

    def issue_refresh_token(self, session: Session, user_id: int) -> str:
        """
        Persist a new refresh token for `user_id` and return its value.

        Lock-wait failures are retried up to REFRESH_TOKEN_INSERT_ATTEMPTS
        times with a growing pause; any other error propagates at once.
        """
        attempts = max(1, self.settings.REFRESH_TOKEN_INSERT_ATTEMPTS)
        backoff = self.settings.REFRESH_TOKEN_RETRY_BACKOFF_SECONDS

        for attempt in range(1, attempts + 1):
            token = RefreshToken(
                user_id=user_id,
                token=generate_opaque_token(),
                expires_at=utcnow() + timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS),
            )
            try:
                self._insert(session, token)
                return token.token
            except OperationalError as exc:
                if not is_lock_contention(exc) or attempt == attempts:
                    raise
                logger.warning(
                    "Refresh token insert hit lock contention for user %s, "
                    "retrying (%s attempts left)",
                    user_id,
                    attempts - attempt,
                )
                self._sleep(backoff * attempt)

        raise AssertionError("unreachable")  # pragma: no cover

    def issue_pair(self, session: Session, user: User) -> TokenPair:
        return TokenPair(
            token=self.create_access_token(user),
            refresh_token=self.issue_refresh_token(session, user.id),
        )

    def find_active(self, session: Session, token: str) -> RefreshToken | None:
        return self.repo.get_active(session, token, utcnow())

    def revoke(self, session: Session, token: str) -> bool:
        """Revoke one token. True only if this call did the revoking."""
        return self.repo.revoke(session, token) == 1

    def revoke_all(self, session: Session, user_id: int) -> int:
        return self.repo.revoke_all_for_user(session, user_id)
