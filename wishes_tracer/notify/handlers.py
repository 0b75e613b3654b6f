"""Consumers of price change events."""

import logging
from datetime import datetime

import httpx

from wishes_tracer.cache import ProductCache
from wishes_tracer.config import settings
from wishes_tracer.notify.events import PriceChangedEvent
from wishes_tracer.notify.publisher import EventPublisher

logger = logging.getLogger(__name__)


class CacheInvalidationHandler:
    """Drops cached product views so readers see the new price."""

    def __init__(self, cache: ProductCache):
        self.cache = cache

    async def close(self):
        await self.cache.close()

    async def __call__(self, event: PriceChangedEvent) -> None:
        await self.cache.invalidate_product(event.product_id)
        await self.cache.invalidate_lists()


class LogAlertHandler:
    """Writes a warning-level line for every price change."""

    async def __call__(self, event: PriceChangedEvent) -> None:
        logger.warning(
            "Price alert: '%s' went from %s to %s %s",
            event.product_name,
            event.old_price,
            event.new_price,
            event.currency,
            extra={"product_id": str(event.product_id), "direction": event.direction},
        )


class DiscordNotifier:
    """Discord webhook client for price change alerts."""

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def build_payload(event: PriceChangedEvent) -> dict:
        """Discord embed describing the change."""
        is_drop = event.direction == "drop"
        fields = [
            {
                "name": "Now",
                "value": f"{event.new_price:.2f} {event.currency}",
                "inline": True,
            },
            {
                "name": "Was",
                "value": f"{event.old_price:.2f} {event.currency}",
                "inline": True,
            },
        ]
        change = event.change_percent
        if change is not None:
            fields.append({"name": "Change", "value": f"{change:+.1f}%", "inline": True})

        embed = {
            "title": f"{'Price drop' if is_drop else 'Price increase'}: {event.product_name}",
            "color": 0x00FF00 if is_drop else 0xFFA500,  # Green or Orange
            "fields": fields,
            "footer": {"text": f"Product {event.product_id}"},
            "timestamp": datetime.utcnow().isoformat(),
        }
        return {"embeds": [embed], "username": "WishesTracer"}

    async def __call__(self, event: PriceChangedEvent) -> None:
        client = await self._get_client()
        response = await client.post(self.webhook_url, json=self.build_payload(event))
        response.raise_for_status()
        logger.info(f"Sent Discord alert for product {event.product_id}")


def build_publisher(cache: ProductCache | None = None) -> EventPublisher:
    """Publisher wired with the handlers enabled in settings.

    ``cache`` is shared with the read side; one is created when omitted.
    """
    publisher = EventPublisher()
    publisher.subscribe(LogAlertHandler())
    if settings.cache_invalidation_enabled and settings.redis_url:
        publisher.subscribe(CacheInvalidationHandler(cache or ProductCache(settings.redis_url)))
    if settings.discord_webhook_url:
        publisher.subscribe(DiscordNotifier(settings.discord_webhook_url))
    return publisher
