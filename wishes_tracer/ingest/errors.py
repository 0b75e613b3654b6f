"""Typed failures raised by the scraping subsystem."""

from typing import Optional


class ScrapingError(Exception):
    """A single scrape call could not produce product data."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Failed to scrape '{url}': {message}")


class UnsupportedVendorError(ScrapingError):
    """No registered vendor strategy recognises the URL."""

    def __init__(self, url: str):
        super().__init__(url, "no vendor strategy supports this URL")


class EmptyContentError(ScrapingError):
    """The browser engine returned no HTML for the URL."""

    def __init__(self, url: str):
        super().__init__(url, "no content retrieved")


class StructuredDataError(ScrapingError):
    """An embedded data island was found but could not be interpreted."""

    def __init__(self, url: str, raw: Optional[str], reason: str):
        self.raw = raw
        super().__init__(url, f"unreadable structured data ({reason})")


class EngineInitializationError(RuntimeError):
    """The shared browser process could not be launched.

    Usually means the browser binaries or their system dependencies are
    missing (``playwright install --with-deps chromium``). Not retryable.
    """
