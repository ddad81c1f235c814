# app/schemas/address.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class AddressWrite(SQLModel):
    """
    Payload for creating or replacing a saved address.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=100)
    street: str
    city: str
    additional_details: str | None = None
    is_default: bool = False
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    place_link: str | None = None

    @field_validator("street", "city")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("title", "additional_details", "place_link")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class AddressRead(SQLModel):
    id: int
    user_id: int
    title: str
    street: str
    city: str
    additional_details: str | None = None
    is_default: bool
    latitude: float | None = None
    longitude: float | None = None
    place_link: str | None = None
    created_at: datetime
    updated_at: datetime
