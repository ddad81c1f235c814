# app/routers/users.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_auth, require_admin
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.common import Envelope, ok
from app.schemas.user import UserRead, UserUpdate, UserRoleUpdate
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=Envelope[UserRead])
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return ok(current_user)


@router.patch("/me", response_model=Envelope[UserRead])
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Editable: `full_name`, `email`.
    """
    return ok(service.update_me(session, current_user, payload))


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=Envelope[list[UserRead]],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """
    List all users (admin only).

    Pagination via skip/limit.
    """
    return ok(service.list_users(session, skip, limit))


@router.get(
    "/{user_id}",
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
):
    return ok(service.get_user(session, user_id))


@router.patch(
    "/{user_id}/role",
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: int,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, admin.
    """
    return ok(service.update_role(session, user_id, payload))
