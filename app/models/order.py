# app/models/order.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    address is a snapshot string taken at checkout, so later edits to
    saved addresses do not change history.

    status: pending | processing | shipped | delivered | cancelled
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    address: str = Field(description="Shipping address snapshot")

    phone_number: str = Field(description="Contact phone number for delivery")

    total_amount: float = Field(
        description="Sum of (price - discount) * quantity over all items",
    )

    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    tracking_number: str | None = Field(default=None)
    notes: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Immutable snapshot of a product line at purchase time.

    product_id is kept for reference only (no FK), so catalog edits or
    deletions never touch historical orders.
    """

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)

    order_id: int = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: int = Field(index=True)

    product_name: str
    product_price: float = Field(description="Unit price at time of order")

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    discount_amount: float = Field(
        default=0,
        description="Per-unit discount at time of order",
    )

    image_url: str | None = Field(default=None)
