"""Vendor strategy base class."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from selectolax.parser import HTMLParser

from wishes_tracer.ingest.base import (
    DEFAULT_TITLE,
    ScrapedData,
    currency_from_host,
    url_host,
)
from wishes_tracer.ingest.errors import StructuredDataError

logger = logging.getLogger(__name__)

# (price, currency or None) pulled from an embedded data island
StructuredPrice = tuple[Decimal, Optional[str]]


class VendorStrategy(ABC):
    """
    Extracts product data from one vendor's product pages.

    Subclasses describe where the vendor keeps its data; this base class
    owns the tiering. The structured tier wins whenever it yields a price,
    the visual tier is the fallback, and missing elements degrade to
    defaults instead of raising.
    """

    vendor: str = "generic"
    host_markers: tuple[str, ...] = ()
    default_currency: str = "USD"
    # Checked in order, so list longer suffixes first
    currency_suffixes: dict[str, str] = {}
    unavailable_phrases: tuple[str, ...] = ()

    def can_handle(self, url: str) -> bool:
        """True if ``url`` points at this vendor. Never raises."""
        host = url_host(url)
        if not host:
            return False
        return any(marker in host for marker in self.host_markers)

    def parse_html(self, html: str, url: str) -> ScrapedData:
        """Extract title, price, currency and availability from a rendered page."""
        tree = HTMLParser(html or "<html></html>")

        title = self._extract_title(tree) or DEFAULT_TITLE
        currency = currency_from_host(url, self.currency_suffixes, self.default_currency)

        structured: Optional[StructuredPrice] = None
        try:
            structured = self._extract_structured(tree, url)
        except StructuredDataError as e:
            logger.warning(f"{self.vendor} structured price unusable, using visual fallback: {e}")

        if structured is not None:
            price, structured_currency = structured
            if structured_currency:
                currency = structured_currency
        else:
            price = self._extract_visual_price(tree)

        if price <= 0:
            logger.debug(f"No price found on {url} ({self.vendor})")
        if title == DEFAULT_TITLE:
            logger.debug(f"No title found on {url} ({self.vendor})")

        return ScrapedData(
            title=title,
            price=price,
            currency=currency,
            is_available=self._resolve_availability(tree, price),
            url=url,
            vendor=self.vendor,
        )

    @abstractmethod
    def _extract_title(self, tree: HTMLParser) -> Optional[str]:
        """Return the product title or None."""

    @abstractmethod
    def _extract_structured(self, tree: HTMLParser, url: str) -> Optional[StructuredPrice]:
        """
        Read the vendor's machine-readable price data.

        Returns None when the page carries no such data. Raises
        StructuredDataError when the data is present but unreadable.
        """

    @abstractmethod
    def _extract_visual_price(self, tree: HTMLParser) -> Decimal:
        """Read the human-facing price, ``Decimal("0")`` when absent."""

    def _resolve_availability(self, tree: HTMLParser, price: Decimal) -> bool:
        """Purchasable only with a positive price and no negative marker."""
        return price > 0 and not self._has_unavailable_marker(tree)

    def _has_unavailable_marker(self, tree: HTMLParser) -> bool:
        return False

    @staticmethod
    def _text(tree: HTMLParser, selector: str) -> Optional[str]:
        """Whitespace-collapsed text of the first match, None when missing or blank."""
        node = tree.css_first(selector)
        if node is None:
            return None
        text = " ".join(node.text().split())
        return text or None

    def _contains_phrase(self, text: Optional[str]) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(phrase in lowered for phrase in self.unavailable_phrases)
