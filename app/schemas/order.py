# app/schemas/order.py
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class OrderItemCreate(SQLModel):
    """
    One line of the order as the client saw it at checkout.

    discount_amount is per unit.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: int
    product_name: str = Field(min_length=1, max_length=255)
    price: float = Field(ge=0)
    quantity: int = Field(gt=0)
    discount_amount: float = Field(default=0, ge=0)
    image_url: str | None = None

    @model_validator(mode="after")
    def discount_within_price(self):
        if self.discount_amount > self.price:
            raise ValueError("discount_amount cannot exceed price")
        return self


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    User provides:
      - items (snapshot of the cart lines)
      - total_amount (must match the items)
      - either a free-form address or the id of a saved address
      - phone_number

    Backend derives:
      - user_id from token
      - status = 'pending'
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemCreate] = Field(min_length=1)
    total_amount: float = Field(ge=0)
    address: str | None = None
    address_id: int | None = None
    phone_number: str
    notes: str | None = None

    @field_validator("phone_number")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("address", "notes")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def address_given(self):
        if self.address is None and self.address_id is None:
            raise ValueError("address or address_id is required")
        return self


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: int
    order_id: int
    product_id: int
    product_name: str
    product_price: float
    quantity: int
    discount_amount: float
    image_url: str | None
    line_total: float


class OrderRead(SQLModel):
    """
    Order header (without items).
    """

    id: int
    user_id: int
    address: str
    phone_number: str
    total_amount: float
    status: OrderStatus
    tracking_number: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
