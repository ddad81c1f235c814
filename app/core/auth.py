# app/core/auth.py
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session, SQLModel

from app.core.errors import AccountLockedError, AuthError, ForbiddenError
from app.core.security import decode_access_token
from app.database import get_session
from app.models.address import Address
from app.models.cart import CartItem
from app.models.order import Order
from app.models.user import User

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so public routes can still resolve an anonymous caller.
bearer_scheme = HTTPBearer(auto_error=False)

NOT_LOGGED_IN_MESSAGE = "You are not logged in. Please log in to get access."
USER_GONE_MESSAGE = "The user belonging to this token no longer exists."
FORBIDDEN_MESSAGE = "You do not have permission to perform this action"

# Resources that carry a user_id column and can be owner-checked
OWNED_RESOURCES: dict[str, type[SQLModel]] = {
    "order": Order,
    "address": Address,
    "cart": CartItem,
}


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the caller from an access token.

    Flow:
      1. No Authorization header => anonymous => return None.
      2. Decode JWT (signature + exp) => 'sub' is the user id.
      3. Load the user; a deleted or locked account is refused.

    Raises:
        AuthError: token invalid/expired, or its user no longer exists.
        AccountLockedError: the account is inactive.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthError("Invalid token. Please log in again.")

    user = session.get(User, user_id)
    if user is None:
        raise AuthError(USER_GONE_MESSAGE)
    if not user.is_active:
        raise AccountLockedError()

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        AuthError: if the caller is anonymous.
    """
    if user is None:
        raise AuthError(NOT_LOGGED_IN_MESSAGE)
    return user


def restrict_to(*roles: str) -> Callable[..., User]:
    """
    Build a dependency that only lets the given roles through.

        @router.get("/admin-only", dependencies=[Depends(restrict_to("admin"))])
    """
    allowed = frozenset(roles)

    def _dependency(user: User = Depends(require_auth)) -> User:
        if user.role not in allowed:
            raise ForbiddenError(FORBIDDEN_MESSAGE)
        return user

    return _dependency


require_admin = restrict_to("admin")


def is_owner_or_admin(resource_type: str, id_param: str = "id") -> Callable[..., User]:
    """
    Build a dependency that lets admins through and otherwise requires the
    resource named by the path parameter `id_param` to belong to the caller.

    A missing resource is reported as forbidden, like one owned by someone
    else.

    Raises:
        ValueError: at build time, for an unknown resource type.
    """
    model = OWNED_RESOURCES.get(resource_type)
    if model is None:
        raise ValueError(f"Unknown resource type: {resource_type}")

    def _dependency(
        request: Request,
        user: User = Depends(require_auth),
        session: Session = Depends(get_session),
    ) -> User:
        if user.role == "admin":
            return user

        raw_id = request.path_params.get(id_param)
        try:
            resource_id = int(raw_id)
        except (TypeError, ValueError):
            raise ForbiddenError(FORBIDDEN_MESSAGE)

        resource = session.get(model, resource_id)
        if resource is None or resource.user_id != user.id:
            raise ForbiddenError(FORBIDDEN_MESSAGE)
        return user

    return _dependency
