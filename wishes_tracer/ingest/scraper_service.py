"""Scrape orchestration: admission control, pacing and strategy dispatch."""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional

from wishes_tracer import metrics
from wishes_tracer.config import settings
from wishes_tracer.ingest.base import ScrapedData
from wishes_tracer.ingest.browser_engine import BrowserEngine
from wishes_tracer.ingest.errors import EmptyContentError, UnsupportedVendorError
from wishes_tracer.ingest.selector import StrategySelector

logger = logging.getLogger(__name__)


class ScraperService:
    """
    Single entry point for turning a product URL into ``ScrapedData``.

    A counting semaphore bounds how many scrapes run at once. The permit is
    taken before the randomised pause so that waiting callers do not burn
    pacing time, and it is always released, whatever the outcome.
    """

    def __init__(
        self,
        selector: StrategySelector,
        engine: BrowserEngine,
        max_concurrency: Optional[int] = None,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.selector = selector
        self.engine = engine
        self.max_concurrency = max_concurrency or settings.scraper_max_concurrency
        self.min_delay = settings.scraper_min_delay_seconds if min_delay is None else min_delay
        self.max_delay = settings.scraper_max_delay_seconds if max_delay is None else max_delay
        if self.max_delay < self.min_delay:
            raise ValueError("max_delay must be >= min_delay")
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        """Scrapes currently holding a permit."""
        return self._in_flight

    async def scrape_product(self, url: str) -> ScrapedData:
        """
        Fetch and parse a product page.

        Raises:
            UnsupportedVendorError: no strategy handles the URL
            EmptyContentError: the browser returned no HTML
            EngineInitializationError: the browser could not be launched
        """
        async with self._semaphore:
            self._in_flight += 1
            metrics.scrapes_in_flight.inc()
            started = time.perf_counter()
            vendor = "unknown"
            status = "error"
            try:
                await self._sleep(random.uniform(self.min_delay, self.max_delay))
                await self.engine.initialize()

                try:
                    strategy = self.selector.get_strategy(url)
                except UnsupportedVendorError:
                    status = "unsupported"
                    raise
                vendor = strategy.vendor

                html = await self.engine.get_html(url)
                if not html:
                    status = "empty"
                    logger.warning("No HTML retrieved for %s", url, extra={"url": url})
                    raise EmptyContentError(url)

                data = strategy.parse_html(html, url)
                status = "success"
                logger.info(
                    "Scraped %s: %s %s (available=%s)",
                    url,
                    data.price,
                    data.currency,
                    data.is_available,
                    extra={"url": url, "vendor": vendor},
                )
                return data
            finally:
                self._in_flight -= 1
                metrics.scrapes_in_flight.dec()
                metrics.record_scrape(vendor, status, time.perf_counter() - started)
