# app/models/address.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Saved shipping address. At most one row per user has is_default=True.
    """

    __tablename__ = "user_addresses"

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    title: str = Field(default="Home", max_length=100)
    street: str
    city: str
    additional_details: str | None = None

    is_default: bool = Field(default=False, index=True)

    latitude: float | None = None
    longitude: float | None = None
    place_link: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def as_snapshot(self) -> str:
        """Single-line form copied onto orders."""
        parts = [self.street, self.city]
        if self.additional_details:
            parts.append(self.additional_details)
        return ", ".join(parts)
