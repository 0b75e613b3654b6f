"""Prometheus metrics for the price tracker."""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

from wishes_tracer import __version__

# Application info
app_info = Info("wishes_tracer", "WishesTracer application info")
app_info.info({"version": __version__, "name": "wishes-tracer"})

# Scrape metrics
scrapes_total = Counter(
    "scrapes_total",
    "Total number of product page scrapes",
    ["vendor", "status"],
)

scrape_duration_seconds = Histogram(
    "scrape_duration_seconds",
    "Time spent scraping a product page (including pacing delay)",
    ["vendor"],
    buckets=[1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
)

scrapes_in_flight = Gauge(
    "scrapes_in_flight",
    "Number of scrapes currently holding an admission permit",
)

# Browser metrics
navigation_failures_total = Counter(
    "navigation_failures_total",
    "Browser navigations that produced no content",
    ["kind"],
)

# Price check job metrics
price_check_runs_total = Counter(
    "price_check_runs_total",
    "Total number of price check sweeps",
    ["status"],
)

price_check_items_total = Counter(
    "price_check_items_total",
    "Products processed by the price check sweep",
    ["outcome"],
)

price_check_last_run_timestamp = Gauge(
    "price_check_last_run_timestamp",
    "Timestamp of the last completed price check sweep",
)

price_changes_total = Counter(
    "price_changes_total",
    "Total number of price changes detected",
    ["vendor", "direction"],
)

# Event metrics
event_handler_errors_total = Counter(
    "event_handler_errors_total",
    "Price change event handlers that raised",
    ["handler"],
)


def record_scrape(vendor: str, status: str, duration: float):
    """Record a finished scrape attempt."""
    scrapes_total.labels(vendor=vendor, status=status).inc()
    scrape_duration_seconds.labels(vendor=vendor).observe(duration)


def record_navigation_failure(kind: str):
    """Record a navigation that collapsed to no content."""
    navigation_failures_total.labels(kind=kind).inc()


def record_price_check_item(outcome: str):
    """Record the outcome of one unit of work in a sweep."""
    price_check_items_total.labels(outcome=outcome).inc()


def record_price_check_run(success: bool):
    """Record a completed price check sweep."""
    status = "success" if success else "cancelled"
    price_check_runs_total.labels(status=status).inc()
    price_check_last_run_timestamp.set(time.time())


def record_price_change(vendor: str, old_price: float, new_price: float):
    """Record a price change."""
    direction = "up" if new_price > old_price else "down"
    price_changes_total.labels(vendor=vendor, direction=direction).inc()


def record_event_handler_error(handler: str):
    """Record a failing event handler."""
    event_handler_errors_total.labels(handler=handler).inc()
