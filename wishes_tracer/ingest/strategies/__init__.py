"""Vendor strategy registry."""

from __future__ import annotations

from wishes_tracer.ingest.strategies.base import VendorStrategy
from wishes_tracer.ingest.strategies.amazon_strategy import AmazonStrategy
from wishes_tracer.ingest.strategies.mercadolibre_strategy import MercadoLibreStrategy


def default_strategies() -> list[VendorStrategy]:
    """Strategies in the order the selector consults them."""
    return [
        AmazonStrategy(),
        MercadoLibreStrategy(),
    ]


__all__ = [
    "VendorStrategy",
    "AmazonStrategy",
    "MercadoLibreStrategy",
    "default_strategies",
]
