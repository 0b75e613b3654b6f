"""Picks the vendor strategy responsible for a URL."""

import logging
from typing import Iterable, Optional

from wishes_tracer.ingest.errors import UnsupportedVendorError
from wishes_tracer.ingest.strategies import VendorStrategy, default_strategies

logger = logging.getLogger(__name__)


class StrategySelector:
    """First registered strategy whose ``can_handle`` accepts the URL wins."""

    def __init__(self, strategies: Optional[Iterable[VendorStrategy]] = None):
        self._strategies: list[VendorStrategy] = (
            list(strategies) if strategies is not None else default_strategies()
        )

    def get_strategy(self, url: str) -> VendorStrategy:
        """
        Resolve the strategy for ``url``.

        Raises:
            UnsupportedVendorError: no registered strategy handles the URL
        """
        for strategy in self._strategies:
            if strategy.can_handle(url):
                return strategy
        logger.info("No vendor strategy for %s", url)
        raise UnsupportedVendorError(url)

    def supported_vendors(self) -> list[str]:
        return [strategy.vendor for strategy in self._strategies]
