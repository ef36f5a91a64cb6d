"""Catalog schemas — products and experts."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    category: str | None = None
    price: Decimal
    stock: int
    image_url: str | None = None
    is_active: bool
    created_at: datetime | None = None


class ProductUpdate(BaseModel):
    """Admin edit of a product. Only provided fields are changed."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    price: Decimal | None = Field(None, ge=0)
    stock: int | None = Field(None, ge=0)
    image_url: str | None = None
    is_active: bool | None = None


class ExpertRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    title: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    specialties: list[str] | None = None
    hourly_rate: Decimal
    rating: float | None = None
    review_count: int = 0
    featured: bool = False
