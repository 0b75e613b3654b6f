"""Data access for tracked products."""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wishes_tracer.db.models import PriceSnapshot, TrackedProduct

logger = logging.getLogger(__name__)


class ProductRepository:
    """Repository bound to a single session (one unit of work)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_ids(self) -> list[uuid.UUID]:
        """Return only the identifiers of products flagged active."""
        result = await self.session.execute(
            select(TrackedProduct.id).where(TrackedProduct.is_active.is_(True))
        )
        return list(result.scalars().all())

    async def get_by_id(self, product_id: uuid.UUID) -> Optional[TrackedProduct]:
        """
        Load a product with its price history.

        ``populate_existing`` refreshes any instance already present in the
        identity map so callers never act on stale state.
        """
        result = await self.session.execute(
            select(TrackedProduct)
            .where(TrackedProduct.id == product_id)
            .options(selectinload(TrackedProduct.price_history))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def exists_with_url(self, url: str) -> Optional[TrackedProduct]:
        """Return the active product already tracking ``url``, if any."""
        result = await self.session.execute(
            select(TrackedProduct).where(
                TrackedProduct.url == url,
                TrackedProduct.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def get_page(
        self, page: int, page_size: int, search: Optional[str] = None
    ) -> tuple[list[TrackedProduct], int]:
        """
        One page of active products, newest first, plus the total match count.

        ``search`` matches case-insensitively anywhere in the name or URL.
        """
        query = select(TrackedProduct).where(TrackedProduct.is_active.is_(True))
        if search:
            term = search.lower()
            query = query.where(
                or_(
                    func.lower(TrackedProduct.name).contains(term, autoescape=True),
                    func.lower(TrackedProduct.url).contains(term, autoescape=True),
                )
            )

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(TrackedProduct.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def get_history(self, product_id: uuid.UUID) -> list[PriceSnapshot]:
        """Price snapshots for a product, newest first."""
        result = await self.session.execute(
            select(PriceSnapshot)
            .where(PriceSnapshot.product_id == product_id)
            .order_by(PriceSnapshot.recorded_at.desc())
        )
        return list(result.scalars().all())

    async def add(self, product: TrackedProduct) -> None:
        """Stage a new product and persist it."""
        self.session.add(product)
        await self.save()

    async def save(self) -> None:
        """Commit pending changes, rolling back before re-raising on failure."""
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
