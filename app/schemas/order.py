"""Order schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    status: str
    total: Decimal
    currency: str
    created_at: datetime | None = None


class OrderStatusUpdate(BaseModel):
    status: Literal["pending", "paid", "shipped", "delivered", "cancelled", "refunded"]


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID | None = None
    quantity: int
    unit_price: Decimal


class OrderWithItemsRead(OrderRead):
    """An order as shown in the customer's order history."""

    items: list[OrderItemRead] = []
