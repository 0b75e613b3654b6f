"""Amazon product page strategy."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional

from selectolax.parser import HTMLParser

from wishes_tracer.ingest.base import currency_from_locale, join_price_parts, parse_decimal
from wishes_tracer.ingest.errors import StructuredDataError
from wishes_tracer.ingest.strategies.base import StructuredPrice, VendorStrategy

PRICE_DATA_SELECTOR = "div.twister-plus-buying-options-price-data"
PRICE_BLOCK_SELECTOR = "#corePriceDisplay_desktop_feature_div"


class AmazonStrategy(VendorStrategy):
    """
    Amazon storefronts (.com, .com.mx, .es, ...).

    The buy box ships its price as a JSON blob inside a hidden div, which
    also carries the storefront locale. The split ``a-price-whole`` /
    ``a-price-fraction`` spans are the fallback.
    """

    vendor = "Amazon"
    host_markers = ("amazon.",)
    default_currency = "USD"
    currency_suffixes = {
        ".com.mx": "MXN",
        ".com.br": "BRL",
        ".co.uk": "GBP",
        ".ca": "CAD",
        ".es": "EUR",
        ".de": "EUR",
        ".fr": "EUR",
        ".it": "EUR",
        ".br": "BRL",
    }
    unavailable_phrases = (
        "no disponible",
        "currently unavailable",
        "agotado",
    )

    def _extract_title(self, tree: HTMLParser) -> Optional[str]:
        return self._text(tree, "span#productTitle")

    def _extract_structured(self, tree: HTMLParser, url: str) -> Optional[StructuredPrice]:
        node = tree.css_first(PRICE_DATA_SELECTOR)
        if node is None:
            return None
        raw = node.text().strip()
        if not raw:
            return None

        try:
            data = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError as e:
            raise StructuredDataError(url, raw[:200], f"invalid JSON: {e.msg}") from e

        buybox = self._find_buybox(data)
        if buybox is None:
            return None

        amount = buybox.get("priceAmount")
        if amount is None:
            return None
        if isinstance(amount, bool) or not isinstance(amount, (int, Decimal, str)):
            raise StructuredDataError(url, raw[:200], f"priceAmount is {type(amount).__name__}")

        price = parse_decimal(str(amount))
        return price, currency_from_locale(buybox.get("locale"))

    @staticmethod
    def _find_buybox(data: Any) -> Optional[dict]:
        """Locate the first buy-box entry carrying price fields."""
        if isinstance(data, list):
            return AmazonStrategy._find_buybox(data[0]) if data else None
        if not isinstance(data, dict):
            return None
        if "desktop_buybox_group_1" in data:
            return AmazonStrategy._find_buybox(data["desktop_buybox_group_1"])
        if "priceAmount" in data:
            return data
        return None

    def _extract_visual_price(self, tree: HTMLParser) -> Decimal:
        whole = self._text(tree, f"{PRICE_BLOCK_SELECTOR} span.a-price-whole")
        fraction = self._text(tree, f"{PRICE_BLOCK_SELECTOR} span.a-price-fraction")
        return join_price_parts(whole, fraction)

    def _has_unavailable_marker(self, tree: HTMLParser) -> bool:
        return self._contains_phrase(self._text(tree, "div#availability"))
