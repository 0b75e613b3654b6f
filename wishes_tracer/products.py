"""Adding, pausing and inspecting tracked products."""

import logging
import uuid
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from wishes_tracer.cache import (
    ProductCache,
    product_details_key,
    product_history_key,
    products_page_key,
)
from wishes_tracer.config import settings
from wishes_tracer.db.models import TrackedProduct
from wishes_tracer.db.repository import ProductRepository
from wishes_tracer.ingest.scraper_service import ScraperService
from wishes_tracer.schemas import (
    PriceHistory,
    PriceSnapshotView,
    ProductDetails,
    ProductPage,
    ProductSummary,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class ProductError(Exception):
    """A product request was rejected."""

    code: str = "Product.Error"


class InvalidUrlError(ProductError):
    code = "Product.InvalidUrl"

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"The provided URL is not valid: '{url}'")


class DuplicateUrlError(ProductError):
    code = "Product.DuplicateUrl"

    def __init__(self, url: str, existing_id: uuid.UUID):
        self.url = url
        self.existing_id = existing_id
        super().__init__(f"A product with URL '{url}' already exists")


class InvalidPriceError(ProductError):
    code = "Product.InvalidPrice"

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Price must be greater than zero (scraped from '{url}')")


class ProductNotFoundError(ProductError):
    code = "Product.NotFound"

    def __init__(self, product_id: uuid.UUID):
        self.product_id = product_id
        super().__init__(f"Product with ID '{product_id}' was not found")


def clean_url(url: Optional[str]) -> str:
    """
    Reduce a product URL to ``https://<host><path>``.

    Query strings and fragments carry tracking noise and would defeat the
    duplicate check.

    Raises:
        InvalidUrlError: not an absolute http(s) URL
    """
    if not url or not isinstance(url, str):
        raise InvalidUrlError(str(url))
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        raise InvalidUrlError(url)
    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidUrlError(url)
    return f"https://{host}{parsed.path}"


class ProductService:
    """Product operations that run outside the periodic sweep.

    Reads go through ``cache`` when one is given; writes drop the entries
    they make stale.
    """

    def __init__(
        self,
        session: AsyncSession,
        scraper: Optional[ScraperService] = None,
        cache: Optional[ProductCache] = None,
    ):
        self.repository = ProductRepository(session)
        self.scraper = scraper
        self.cache = cache

    async def track_product(self, url: str) -> TrackedProduct:
        """
        Start tracking the product behind ``url``.

        Scraping failures (unsupported vendor, empty content) propagate to
        the caller unchanged.
        """
        if self.scraper is None:
            raise RuntimeError("ProductService needs a scraper to track products")
        cleaned = clean_url(url)

        existing = await self.repository.exists_with_url(cleaned)
        if existing is not None:
            raise DuplicateUrlError(cleaned, existing.id)

        scraped = await self.scraper.scrape_product(cleaned)
        if scraped.price <= 0:
            raise InvalidPriceError(cleaned)

        product = TrackedProduct.create(scraped.title, scraped.url, scraped.vendor)
        product.update_price(scraped.price, scraped.currency, scraped.is_available)
        await self.repository.add(product)
        await self._forget(None)

        logger.info(
            "Now tracking %s (%s) at %s %s",
            product.name,
            product.vendor,
            product.current_price,
            product.currency,
            extra={"product_id": str(product.id), "url": product.url},
        )
        return product

    async def list_products(
        self, page: int = 1, page_size: int = 10, search: Optional[str] = None
    ) -> ProductPage:
        """Active products, newest first. ``page_size`` is clamped to 1..100."""
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        search = search.strip() if search and search.strip() else None

        key = products_page_key(page, page_size, search)
        cached = await self._cached(key)
        if cached is not None:
            return ProductPage.model_validate_json(cached)

        products, total = await self.repository.get_page(page, page_size, search)
        result = ProductPage(
            items=[ProductSummary.model_validate(p) for p in products],
            page=page,
            page_size=page_size,
            total_count=total,
        )
        await self._store(key, result.model_dump_json(), settings.cache_list_ttl_seconds)
        return result

    async def get_product_details(self, product_id: uuid.UUID) -> ProductDetails:
        """A product with its price history, newest first."""
        key = product_details_key(product_id)
        cached = await self._cached(key)
        if cached is not None:
            return ProductDetails.model_validate_json(cached)

        product = await self.repository.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        details = ProductDetails.model_validate(product)
        await self._store(key, details.model_dump_json(), settings.cache_details_ttl_seconds)
        return details

    async def get_price_history(self, product_id: uuid.UUID) -> list[PriceSnapshotView]:
        """Price snapshots for a product, newest first."""
        key = product_history_key(product_id)
        cached = await self._cached(key)
        if cached is not None:
            return PriceHistory.validate_json(cached)

        product = await self.repository.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        history = [
            PriceSnapshotView.model_validate(s)
            for s in await self.repository.get_history(product_id)
        ]
        await self._store(
            key, PriceHistory.dump_json(history).decode(), settings.cache_history_ttl_seconds
        )
        return history

    async def set_active(self, product_id: uuid.UUID, active: bool) -> TrackedProduct:
        """Pause or resume tracking for a product."""
        product = await self.repository.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if active:
            product.resume()
        else:
            product.pause()
        await self.repository.save()
        await self._forget(product_id)
        logger.info(f"Product {product_id} {'resumed' if active else 'paused'}")
        return product

    async def _cached(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        return await self.cache.get(key)

    async def _store(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.cache is not None:
            await self.cache.set(key, value, ttl_seconds)

    async def _forget(self, product_id: Optional[uuid.UUID]) -> None:
        """Drop list pages, and the product's own entries when one is given."""
        if self.cache is None:
            return
        try:
            if product_id is not None:
                await self.cache.invalidate_product(product_id)
            await self.cache.invalidate_lists()
        except Exception as e:
            logger.warning(f"Could not invalidate cached product views: {e}")
