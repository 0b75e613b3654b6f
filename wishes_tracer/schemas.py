"""Read models for tracked products."""

import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, computed_field


class PriceSnapshotView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    price: Decimal
    recorded_at: datetime


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    vendor: str
    current_price: Decimal
    currency: str
    is_available: bool
    is_active: bool


class ProductDetails(BaseModel):
    """A product with its full price history, newest snapshot first."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    url: str
    vendor: str
    current_price: Decimal
    currency: str
    is_available: bool
    is_active: bool
    last_checked_at: Optional[datetime]
    created_at: datetime
    price_history: list[PriceSnapshotView] = []


class ProductPage(BaseModel):
    """One page of active products."""

    items: list[ProductSummary]
    page: int
    page_size: int
    total_count: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @computed_field
    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


PriceHistory = TypeAdapter(list[PriceSnapshotView])
