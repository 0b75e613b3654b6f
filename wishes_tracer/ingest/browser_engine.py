"""Shared headless browser for JavaScript-rendered product pages."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Callable, Iterable, Optional
from urllib.parse import urlparse

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from wishes_tracer import metrics
from wishes_tracer.config import settings
from wishes_tracer.ingest.errors import EngineInitializationError

logger = logging.getLogger(__name__)

# Resource types answered with an empty body instead of being downloaded
EMPTY_BODY_TYPES = {"image": "text/plain", "font": "text/plain", "stylesheet": "text/css"}

# Masks the most common automation fingerprint before any page script runs
WEBDRIVER_MASK_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined
});
window.chrome = window.chrome || { runtime: {} };
Object.defineProperty(navigator, 'languages', {
    get: () => ['es-MX', 'es', 'en-US', 'en']
});
"""


class NavigationFailure(str, Enum):
    """Why a navigation produced no content."""

    DNS = "dns"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    TLS = "tls"
    TARGET_CLOSED = "target_closed"
    OTHER = "other"


def classify_navigation_error(error: Exception) -> NavigationFailure:
    """Map a Playwright navigation exception to a failure kind."""
    if isinstance(error, PlaywrightTimeoutError):
        return NavigationFailure.TIMEOUT

    message = str(error)
    if "ERR_NAME_NOT_RESOLVED" in message or "ERR_NAME_RESOLUTION_FAILED" in message:
        return NavigationFailure.DNS
    if "ERR_CONNECTION_REFUSED" in message:
        return NavigationFailure.CONNECTION_REFUSED
    if "ERR_CONNECTION_TIMED_OUT" in message or "ERR_TIMED_OUT" in message:
        return NavigationFailure.TIMEOUT
    if "ERR_CERT" in message or "ERR_SSL" in message or "SSL" in message:
        return NavigationFailure.TLS
    lowered = message.lower()
    if "target closed" in lowered or "has been closed" in lowered:
        return NavigationFailure.TARGET_CLOSED
    return NavigationFailure.OTHER


def is_blocked_host(url: str, blocked_hosts: Iterable[str]) -> bool:
    """True when the request's host name (never its path) contains a blocked word."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return bool(host) and any(blocked in host for blocked in blocked_hosts)


def route_action(resource_type: str, url: str, blocked_hosts: Iterable[str]) -> str:
    """
    Decide what to do with one intercepted request.

    Returns ``continue``, ``fulfill`` (empty body) or ``abort``. The main
    document always continues, whatever its URL contains.
    """
    if resource_type == "document":
        return "continue"
    if resource_type in EMPTY_BODY_TYPES:
        return "fulfill"
    if is_blocked_host(url, blocked_hosts):
        return "abort"
    return "continue"


class BrowserEngine:
    """
    Owns one Chromium process for the lifetime of the application.

    Every fetch runs in its own short-lived browser context (separate
    cookies and storage) that is torn down before ``get_html`` returns.
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        navigation_timeout_ms: Optional[int] = None,
        settle_delay_ms: Optional[int] = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.headless = settings.browser_headless if headless is None else headless
        self.navigation_timeout_ms = navigation_timeout_ms or settings.browser_navigation_timeout_ms
        self.settle_delay_ms = (
            settings.browser_settle_delay_ms if settle_delay_ms is None else settle_delay_ms
        )
        self._playwright_factory = playwright_factory
        self._blocked_hosts = tuple(host.lower() for host in settings.browser_blocked_hosts)

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._initialized = False
        self._init_error: Optional[EngineInitializationError] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Launch the browser once.

        Safe to call from many tasks: only the first caller launches, the
        rest wait on the lock and then see the initialized flag. A failed
        launch is remembered and re-raised to every later caller.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            if self._init_error is not None:
                raise self._init_error

            try:
                self._playwright = await self._playwright_factory().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=settings.browser_launch_args,
                )
            except Exception as e:
                logger.critical(
                    "Could not launch headless browser (run `playwright install --with-deps chromium`): %s",
                    e,
                    exc_info=True,
                )
                await self._stop_driver()
                self._init_error = EngineInitializationError(
                    f"Headless browser launch failed: {e}"
                )
                raise self._init_error from e

            self._initialized = True
            logger.info("Headless browser started (headless=%s)", self.headless)

    @asynccontextmanager
    async def page_session(self) -> AsyncIterator[Page]:
        """Yield a page in a fresh isolated context, closing both on exit."""
        if self._browser is None:
            raise EngineInitializationError("Browser engine used before initialize()")

        context = await self._browser.new_context(
            user_agent=settings.browser_user_agent,
            viewport={
                "width": settings.browser_viewport_width,
                "height": settings.browser_viewport_height,
            },
            ignore_https_errors=True,
            accept_downloads=False,
            locale="es-MX",
        )
        page: Optional[Page] = None
        try:
            await context.add_init_script(WEBDRIVER_MASK_SCRIPT)
            await self._install_routes(context)
            page = await context.new_page()
            yield page
        finally:
            await self._close_quietly(page, "page")
            await self._close_quietly(context, "context")

    async def _install_routes(self, context: BrowserContext) -> None:
        """Short-circuit heavy assets and drop trackers."""
        await context.route("**/*", self._handle_route)

    async def _handle_route(self, route: Route) -> None:
        request = route.request
        action = route_action(request.resource_type, request.url, self._blocked_hosts)
        if action == "fulfill":
            await route.fulfill(
                status=200, content_type=EMPTY_BODY_TYPES[request.resource_type], body=""
            )
        elif action == "abort":
            await route.abort()
        else:
            await route.continue_()

    async def get_html(self, url: str) -> Optional[str]:
        """
        Render ``url`` and return the resulting HTML.

        Transport failures (DNS, refused connection, timeout, TLS, closed
        target) are logged by kind and reported as ``None``.
        """
        if not self._initialized:
            await self.initialize()

        try:
            async with self.page_session() as page:
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.navigation_timeout_ms,
                )
                await page.wait_for_timeout(self.settle_delay_ms)
                return await page.content()
        except PlaywrightError as e:
            kind = classify_navigation_error(e)
            metrics.record_navigation_failure(kind.value)
            logger.warning(
                "Navigation to %s failed (%s): %s",
                url,
                kind.value,
                str(e).splitlines()[0] if str(e) else type(e).__name__,
                extra={"url": url, "failure": kind.value},
            )
            return None

    @staticmethod
    async def _close_quietly(resource, label: str) -> None:
        if resource is None:
            return
        try:
            await resource.close()
        except Exception as e:
            logger.debug(f"Error closing browser {label}: {e}")

    async def _stop_driver(self) -> None:
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Error stopping Playwright driver: {e}")
            self._playwright = None

    async def close(self) -> None:
        """Shut the browser down. Repeated calls are no-ops."""
        async with self._init_lock:
            browser, self._browser = self._browser, None
            self._initialized = False
            if browser is not None:
                try:
                    await browser.close()
                except Exception as e:
                    logger.error(f"Error closing browser: {e}")
                logger.info("Headless browser closed")
            await self._stop_driver()

    async def __aenter__(self) -> "BrowserEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
