"""Scraped product payload and shared price/currency helpers."""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import urlparse

DEFAULT_TITLE = "Title not found"

# Region part of a locale -> ISO 4217 currency code
REGION_CURRENCIES: dict[str, str] = {
    "MX": "MXN",
    "US": "USD",
    "CA": "CAD",
    "BR": "BRL",
    "AR": "ARS",
    "CO": "COP",
    "CL": "CLP",
    "UY": "UYU",
    "PE": "PEN",
    "GB": "GBP",
    "ES": "EUR",
    "DE": "EUR",
    "FR": "EUR",
    "IT": "EUR",
    "NL": "EUR",
    "JP": "JPY",
    "IN": "INR",
    "AU": "AUD",
}

_NON_NUMERIC = re.compile(r"[^\d.\-]")


@dataclass(frozen=True)
class ScrapedData:
    """Product data extracted from a single vendor page."""

    title: str
    price: Decimal
    currency: str
    is_available: bool
    url: str
    vendor: str


def parse_decimal(text: Optional[str]) -> Decimal:
    """
    Parse an already-normalised number such as ``"5899.00"``.

    Anything that is not a finite number yields ``Decimal("0")``.
    """
    if not text:
        return Decimal("0")
    cleaned = _NON_NUMERIC.sub("", text.strip())
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value


def join_price_parts(whole: Optional[str], fraction: Optional[str] = None) -> Decimal:
    """
    Combine split visual price fragments into a decimal.

    The whole part may carry thousands separators in either convention
    (``"5,165."`` or ``"5.899"``); both dots and commas are dropped. The
    fraction part keeps only its digits.
    """
    if not whole:
        return Decimal("0")
    whole_digits = re.sub(r"\D", "", whole)
    if not whole_digits:
        return Decimal("0")
    fraction_digits = re.sub(r"\D", "", fraction or "")
    if fraction_digits:
        return parse_decimal(f"{whole_digits}.{fraction_digits}")
    return parse_decimal(whole_digits)


def url_host(url: Optional[str]) -> str:
    """Lower-cased host of ``url`` or an empty string when it has none."""
    if not url or not isinstance(url, str):
        return ""
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return ""
    return (host or "").lower()


def currency_from_locale(locale: Optional[str]) -> Optional[str]:
    """Map a locale like ``es-MX`` to its currency code, if known."""
    if not locale or not isinstance(locale, str):
        return None
    parts = re.split(r"[-_]", locale.strip())
    if len(parts) < 2:
        return None
    return REGION_CURRENCIES.get(parts[-1].upper())


def currency_from_host(url: Optional[str], suffixes: dict[str, str], default: str) -> str:
    """
    Infer the currency from the URL host suffix.

    ``suffixes`` is checked in insertion order so longer, more specific
    suffixes (``.com.br``) should precede shorter ones (``.br``).
    """
    host = url_host(url)
    if host:
        for suffix, currency in suffixes.items():
            if host.endswith(suffix):
                return currency
    return default
