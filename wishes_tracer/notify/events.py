"""Domain events emitted by the price monitor."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PriceChangedEvent:
    """A sweep observed a different price than the one stored before fetching."""

    product_id: uuid.UUID
    product_name: str
    old_price: Decimal
    new_price: Decimal
    currency: str
    occurred_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def direction(self) -> str:
        return "drop" if self.new_price < self.old_price else "increase"

    @property
    def change_percent(self) -> Optional[float]:
        """Relative change against the old price, None when there was no old price."""
        if not self.old_price or self.old_price <= 0:
            return None
        return float((self.new_price - self.old_price) / self.old_price * 100)
