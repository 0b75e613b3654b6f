"""Batch sweep that re-checks the price of every active product."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wishes_tracer import metrics
from wishes_tracer.db.repository import ProductRepository
from wishes_tracer.ingest.scraper_service import ScraperService
from wishes_tracer.logging_config import get_logger
from wishes_tracer.notify.events import PriceChangedEvent
from wishes_tracer.notify.publisher import EventPublisher

logger = logging.getLogger(__name__)


@dataclass
class PriceCheckSummary:
    """Outcome counts for one sweep."""

    total: int = 0
    checked: int = 0
    changed: int = 0
    unavailable: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False


class PriceCheckJob:
    """
    Best-effort sweep over all active products.

    Each product is handled as its own unit of work with a dedicated
    session: it is re-read fresh, scraped, updated, committed and, when the
    price moved, announced. Any failure is logged against that product and
    the sweep moves on.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scraper: ScraperService,
        publisher: EventPublisher,
        repository_factory: Callable[[AsyncSession], ProductRepository] = ProductRepository,
    ):
        self.session_factory = session_factory
        self.scraper = scraper
        self.publisher = publisher
        self.repository_factory = repository_factory
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return not self._idle.is_set()

    async def wait_idle(self) -> None:
        """Wait until no sweep is in progress."""
        await self._idle.wait()

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> PriceCheckSummary:
        """Run one sweep. Stops before the next product once ``cancel_event`` is set."""
        self._idle.clear()
        try:
            return await self._sweep(cancel_event)
        finally:
            self._idle.set()

    async def _sweep(self, cancel_event: Optional[asyncio.Event]) -> PriceCheckSummary:
        logger.info("---- Price check sweep started ----")
        summary = PriceCheckSummary()

        product_ids = await self._load_active_ids()
        summary.total = len(product_ids)
        if not product_ids:
            logger.info("No active products to check")
            metrics.record_price_check_run(success=True)
            return summary

        for product_id in product_ids:
            if cancel_event is not None and cancel_event.is_set():
                summary.cancelled = True
                logger.info(
                    "Price check sweep cancelled with %d of %d products remaining",
                    summary.total - (summary.checked + summary.skipped + summary.failed),
                    summary.total,
                )
                break

            outcome = await self._process_product(product_id)
            metrics.record_price_check_item(outcome)
            if outcome == "changed":
                summary.checked += 1
                summary.changed += 1
            elif outcome == "unchanged":
                summary.checked += 1
            elif outcome == "unavailable":
                summary.checked += 1
                summary.unavailable += 1
            elif outcome == "skipped":
                summary.skipped += 1
            else:
                summary.failed += 1

        metrics.record_price_check_run(success=not summary.cancelled)
        logger.info(
            "---- Price check sweep finished: %d checked, %d changed, %d unavailable, "
            "%d skipped, %d failed ----",
            summary.checked,
            summary.changed,
            summary.unavailable,
            summary.skipped,
            summary.failed,
        )
        return summary

    async def _load_active_ids(self) -> list[uuid.UUID]:
        async with self.session_factory() as session:
            return await self.repository_factory(session).get_active_ids()

    async def _process_product(self, product_id: uuid.UUID) -> str:
        """
        Unit of work for one product.

        Returns one of ``changed``, ``unchanged``, ``unavailable``, ``skipped``,
        ``failed``.
        """
        log = get_logger(__name__, product_id=str(product_id))
        try:
            async with self.session_factory() as session:
                repository = self.repository_factory(session)

                product = await repository.get_by_id(product_id)
                if product is None:
                    log.warning(f"Product {product_id} not found, skipping")
                    return "skipped"
                if not product.is_active:
                    log.debug(f"Product {product_id} is inactive, skipping")
                    return "skipped"

                log = log.bind(url=product.url, vendor=product.vendor)
                previous_price = product.current_price

                try:
                    scraped = await self.scraper.scrape_product(product.url)
                except Exception as e:
                    log.error(
                        "Error scraping product %s from %s: %s",
                        product.name,
                        product.url,
                        e,
                        exc_info=True,
                    )
                    return "failed"

                if scraped.price <= 0:
                    # No usable price: keep the stored one, record the sell-out
                    log.warning(
                        "Scraped non-positive price %s for %s, keeping %s and marking unavailable",
                        scraped.price,
                        product.url,
                        previous_price,
                    )
                    product.mark_unavailable()
                    if not await self._save(repository, log):
                        return "failed"
                    return "unavailable"

                product.update_price(scraped.price, scraped.currency, scraped.is_available)
                if not await self._save(repository, log):
                    return "failed"

                if product.current_price == previous_price:
                    log.info(f"Checked without changes: {product.name}")
                    return "unchanged"

                event = PriceChangedEvent(
                    product_id=product.id,
                    product_name=product.name,
                    old_price=previous_price,
                    new_price=product.current_price,
                    currency=product.currency,
                )
                metrics.record_price_change(
                    product.vendor, float(previous_price), float(product.current_price)
                )
                log.warning(
                    "Price change detected for %s: %s -> %s %s",
                    product.name,
                    previous_price,
                    product.current_price,
                    product.currency,
                )
                await self.publisher.publish(event)
                return "changed"
        except Exception as e:
            log.error(f"Error processing product {product_id}: {e}", exc_info=True)
            return "failed"

    @staticmethod
    async def _save(repository: ProductRepository, log) -> bool:
        try:
            await repository.save()
        except Exception as e:
            log.error(f"Error persisting product state: {e}", exc_info=True)
            return False
        return True
