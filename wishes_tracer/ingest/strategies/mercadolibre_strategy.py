"""MercadoLibre product page strategy."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from selectolax.parser import HTMLParser

from wishes_tracer.ingest.base import join_price_parts, parse_decimal
from wishes_tracer.ingest.errors import StructuredDataError
from wishes_tracer.ingest.strategies.base import StructuredPrice, VendorStrategy

SECOND_LINE_SELECTOR = ".ui-pdp-price__second-line"
BUY_ACTION_SELECTORS = (
    "button.ui-pdp-actions__button",
    'a[href*="buybox-form"]',
)


class MercadoLibreStrategy(VendorStrategy):
    """
    MercadoLibre / MercadoLivre listings.

    Listings expose schema.org microdata (``<meta itemprop="price">``), which
    is far steadier than the styled price spans used as fallback.
    """

    vendor = "MercadoLibre"
    host_markers = ("mercadolibre.", "mercadolivre.")
    default_currency = "MXN"
    currency_suffixes = {
        ".com.mx": "MXN",
        ".com.ar": "ARS",
        ".com.co": "COP",
        ".com.uy": "UYU",
        ".com.pe": "PEN",
        ".com.br": "BRL",
        ".cl": "CLP",
        ".br": "BRL",
    }
    unavailable_phrases = (
        "publicación pausada",
        "publicación finalizada",
    )

    def _extract_title(self, tree: HTMLParser) -> Optional[str]:
        return self._text(tree, "h1.ui-pdp-title")

    def _extract_structured(self, tree: HTMLParser, url: str) -> Optional[StructuredPrice]:
        node = tree.css_first('meta[itemprop="price"]')
        if node is None:
            return None
        content = (node.attributes.get("content") or "").strip()
        if not content:
            return None
        if not any(ch.isdigit() for ch in content):
            raise StructuredDataError(url, content, "price meta is not numeric")
        price = parse_decimal(content)

        currency = None
        currency_node = tree.css_first('meta[itemprop="priceCurrency"]')
        if currency_node is not None:
            code = (currency_node.attributes.get("content") or "").strip().upper()
            if len(code) == 3 and code.isalpha():
                currency = code
        return price, currency

    def _extract_visual_price(self, tree: HTMLParser) -> Decimal:
        # Both "." and "," are thousands separators in the fraction span ("5.899")
        whole = self._text(tree, f"{SECOND_LINE_SELECTOR} .andes-money-amount__fraction")
        cents = self._text(tree, f"{SECOND_LINE_SELECTOR} .andes-money-amount__cents")
        return join_price_parts(whole, cents)

    def _resolve_availability(self, tree: HTMLParser, price: Decimal) -> bool:
        if price <= 0:
            return False
        has_buy_action = any(tree.css_first(sel) is not None for sel in BUY_ACTION_SELECTORS)
        return has_buy_action and not self._has_unavailable_marker(tree)

    def _has_unavailable_marker(self, tree: HTMLParser) -> bool:
        if tree.css_first('[class*="ui-pdp-promotions-pill-label--PAUSED"]') is not None:
            return True
        return self._contains_phrase(self._text(tree, ".ui-pdp-message"))
