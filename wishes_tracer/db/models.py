"""SQLAlchemy database models."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TrackedProduct(Base):
    """Product page whose price is re-checked on every sweep.

    Price state is only changed through :meth:`update_price`, which also
    maintains the append-only price history.
    """

    __tablename__ = "tracked_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    vendor: Mapped[str] = mapped_column(String(32), nullable=False)  # Amazon | MercadoLibre

    current_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(8), default="MXN", nullable=False)

    is_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    price_history: Mapped[list["PriceSnapshot"]] = relationship(
        "PriceSnapshot",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="desc(PriceSnapshot.recorded_at)",
    )

    @classmethod
    def create(cls, name: str, url: str, vendor: str) -> "TrackedProduct":
        """Build a new active product with an empty price history."""
        return cls(
            id=uuid.uuid4(),
            name=name,
            url=url,
            vendor=vendor,
            current_price=Decimal("0"),
            currency="MXN",
            is_available=False,
            is_active=True,
            created_at=datetime.utcnow(),
            price_history=[],
        )

    def update_price(self, new_price: Decimal, currency: str, is_available: bool) -> bool:
        """
        Apply a freshly scraped price.

        The outgoing price is recorded in the history only when the price
        actually moved and the new value is positive. Current state is
        overwritten either way.

        Returns:
            True if a history entry was appended
        """
        previous = self.current_price if self.current_price is not None else Decimal("0")
        now = datetime.utcnow()

        recorded = False
        if new_price != previous and new_price > 0:
            self.price_history.append(PriceSnapshot(price=previous, recorded_at=now))
            recorded = True

        self.current_price = new_price
        self.currency = currency
        self.is_available = is_available
        self.last_checked_at = now
        return recorded

    def mark_unavailable(self) -> None:
        """Record a check that found no usable price; the last known price is kept."""
        self.is_available = False
        self.last_checked_at = datetime.utcnow()

    def pause(self) -> None:
        """Stop including this product in price check sweeps."""
        self.is_active = False

    def resume(self) -> None:
        """Include this product in price check sweeps again."""
        self.is_active = True

    def __repr__(self) -> str:
        return f"<TrackedProduct {self.id} {self.vendor} {self.current_price} {self.currency}>"


class PriceSnapshot(Base):
    """Immutable historical price point."""

    __tablename__ = "price_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracked_products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    product: Mapped["TrackedProduct"] = relationship(
        "TrackedProduct", back_populates="price_history"
    )
