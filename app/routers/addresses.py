# app/routers/addresses.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import is_owner_or_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.schemas.address import AddressRead, AddressWrite
from app.schemas.common import Envelope, MessageResponse, message, ok
from app.services.address_service import AddressService

router = APIRouter(prefix="/addresses", tags=["Addresses"])

repo = AddressRepository()
service = AddressService(repo)

owner_or_admin = is_owner_or_admin("address", "address_id")


@router.get("", response_model=Envelope[list[AddressRead]])
def list_my_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    List the caller's saved addresses, default first.
    """
    return ok(service.list_addresses(session, current_user.id))


@router.post(
    "",
    response_model=Envelope[AddressRead],
    status_code=status.HTTP_201_CREATED,
)
def create_address(
    payload: AddressWrite,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Save a new address. `is_default=true` clears the previous default.
    """
    return ok(service.create_address(session, current_user.id, payload))


@router.get("/{address_id}", response_model=Envelope[AddressRead])
def get_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(owner_or_admin),
):
    return ok(service.get_address(session, address_id, current_user))


@router.put("/{address_id}", response_model=Envelope[AddressRead])
def update_address(
    address_id: int,
    payload: AddressWrite,
    session: Session = Depends(get_session),
    current_user: User = Depends(owner_or_admin),
):
    return ok(service.update_address(session, address_id, current_user, payload))


@router.delete("/{address_id}", response_model=MessageResponse)
def delete_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(owner_or_admin),
):
    """
    Delete an address. If it was the default, the newest remaining one
    becomes the default.
    """
    service.delete_address(session, address_id, current_user)
    return message("Address deleted successfully")
