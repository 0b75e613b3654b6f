"""Main application entry point."""

import argparse
import asyncio
import logging
import signal
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime

from wishes_tracer.cache import ProductCache
from wishes_tracer.db.session import AsyncSessionLocal, engine as db_engine, init_db
from wishes_tracer.ingest.browser_engine import BrowserEngine
from wishes_tracer.ingest.errors import ScrapingError
from wishes_tracer.ingest.scraper_service import ScraperService
from wishes_tracer.ingest.selector import StrategySelector
from wishes_tracer.logging_config import setup_logging
from wishes_tracer.notify.handlers import build_publisher
from wishes_tracer.notify.publisher import EventPublisher
from wishes_tracer.products import ProductError, ProductNotFoundError, ProductService
from wishes_tracer.schemas import ProductDetails, ProductPage
from wishes_tracer.worker.price_check import PriceCheckJob
from wishes_tracer.worker.scheduler import PRICE_CHECK_JOB_ID, setup_scheduler

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 60


@dataclass
class Application:
    """Long-lived services shared by every entry point."""

    browser: BrowserEngine
    scraper: ScraperService
    publisher: EventPublisher
    job: PriceCheckJob
    cache: ProductCache

    async def close(self) -> None:
        await self.publisher.close()
        await self.cache.close()
        await self.browser.close()
        await db_engine.dispose()


def build_application() -> Application:
    browser = BrowserEngine()
    scraper = ScraperService(StrategySelector(), browser)
    cache = ProductCache()
    publisher = build_publisher(cache)
    job = PriceCheckJob(AsyncSessionLocal, scraper, publisher)
    return Application(
        browser=browser, scraper=scraper, publisher=publisher, job=job, cache=cache
    )


async def run_once(app: Application) -> int:
    summary = await app.job.run()
    return 1 if summary.failed and not summary.checked else 0


async def track(app: Application, url: str) -> int:
    async with AsyncSessionLocal() as session:
        service = ProductService(session, app.scraper, cache=app.cache)
        try:
            product = await service.track_product(url)
        except (ProductError, ScrapingError) as e:
            logger.error(f"Could not track {url}: {e}")
            return 1
    print(f"{product.id}  {product.vendor}  {product.current_price} {product.currency}  {product.name}")
    return 0


def format_page(result: ProductPage) -> str:
    lines = [
        f"{p.id}  {p.vendor:<12}  {p.current_price:>10} {p.currency}  "
        f"{'available' if p.is_available else 'unavailable':<11}  {p.name}"
        for p in result.items
    ]
    lines.append(
        f"Page {result.page} of {max(result.total_pages, 1)} ({result.total_count} products)"
    )
    return "\n".join(lines)


def format_details(details: ProductDetails) -> str:
    lines = [
        f"{details.name} ({details.vendor})",
        f"  {details.url}",
        f"  Price: {details.current_price} {details.currency}"
        f"  {'available' if details.is_available else 'unavailable'}"
        f"  {'active' if details.is_active else 'paused'}",
        f"  Last checked: {details.last_checked_at or 'never'}",
    ]
    for snapshot in details.price_history:
        lines.append(f"  {snapshot.recorded_at:%Y-%m-%d %H:%M}  {snapshot.price}")
    return "\n".join(lines)


async def list_products(app: Application, page: int, page_size: int, search) -> int:
    async with AsyncSessionLocal() as session:
        service = ProductService(session, cache=app.cache)
        result = await service.list_products(page, page_size, search)
    print(format_page(result))
    return 0


async def show_product(app: Application, product_id: uuid.UUID) -> int:
    async with AsyncSessionLocal() as session:
        service = ProductService(session, cache=app.cache)
        try:
            details = await service.get_product_details(product_id)
        except ProductNotFoundError as e:
            logger.error(str(e))
            return 1
    print(format_details(details))
    return 0


async def serve(app: Application) -> int:
    """Run the scheduled sweep until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    scheduler = setup_scheduler(app.job, cancel_event=stop_event)
    scheduler.start()
    logger.info("Scheduler started")

    # First sweep immediately instead of waiting a full interval
    scheduler.modify_job(PRICE_CHECK_JOB_ID, next_run_time=datetime.now())

    await stop_event.wait()

    logger.info("Shutting down...")
    scheduler.shutdown(wait=False)

    # The running sweep stops before its next product; let the current one finish
    if app.job.is_running:
        try:
            await asyncio.wait_for(app.job.wait_idle(), timeout=SHUTDOWN_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Price check sweep still running at shutdown")
    return 0


async def run(args: argparse.Namespace) -> int:
    logger.info("Starting WishesTracer...")
    await init_db()

    app = build_application()
    try:
        if args.track:
            return await track(app, args.track)
        if args.list:
            return await list_products(app, args.page, args.page_size, args.search)
        if args.show:
            return await show_product(app, args.show)
        if args.once:
            return await run_once(app)
        return await serve(app)
    finally:
        await app.close()
        logger.info("Shutdown complete")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wishes-tracer",
        description="Track product prices on Amazon and MercadoLibre",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--once",
        action="store_true",
        help="Run a single price check sweep and exit",
    )
    group.add_argument(
        "--track",
        metavar="URL",
        help="Start tracking the product at URL and exit",
    )
    group.add_argument(
        "--list",
        action="store_true",
        help="List active products and exit",
    )
    group.add_argument(
        "--show",
        metavar="ID",
        type=uuid.UUID,
        help="Show one product with its price history and exit",
    )
    parser.add_argument("--page", type=int, default=1, help="Page for --list")
    parser.add_argument("--page-size", type=int, default=10, help="Products per page for --list")
    parser.add_argument("--search", help="Filter --list by name or URL")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
