# app/schemas/product.py
from datetime import datetime

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


class ProductCreate(SQLModel):
    """
    Payload for creating a product (admin).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=255)
    description: str | None = None
    price: float = Field(ge=0)
    discount_amount: float = Field(default=0, ge=0)
    stock_on_hand: int = Field(default=0, ge=0)
    is_active: bool = True
    image_url: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @model_validator(mode="after")
    def discount_within_price(self):
        if self.discount_amount > self.price:
            raise ValueError("discount_amount cannot exceed price")
        return self


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: int
    name: str
    description: str | None = None
    price: float
    discount_amount: float
    stock_on_hand: int
    is_active: bool
    image_url: str | None = None
    created_at: datetime


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    discount_amount: float | None = Field(default=None, ge=0)
    stock_on_hand: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    image_url: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v
