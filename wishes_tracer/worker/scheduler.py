"""APScheduler job definitions."""

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from wishes_tracer.config import settings
from wishes_tracer.worker.price_check import PriceCheckJob

logger = logging.getLogger(__name__)

PRICE_CHECK_JOB_ID = "price_check"


def setup_scheduler(
    job: PriceCheckJob, cancel_event: Optional[asyncio.Event] = None
) -> AsyncIOScheduler:
    """
    Setup and configure APScheduler.

    A single interval job runs the price check sweep every
    ``settings.price_check_interval_minutes``. Overlapping sweeps are
    prevented and missed runs collapse into one. Once ``cancel_event`` is
    set, a running sweep stops before its next product.

    Returns:
        Configured scheduler instance (not started)
    """
    scheduler = AsyncIOScheduler()
    interval = max(1, int(settings.price_check_interval_minutes))

    scheduler.add_job(
        job.run,
        IntervalTrigger(minutes=interval),
        id=PRICE_CHECK_JOB_ID,
        name="Check prices of active products",
        max_instances=1,  # Prevent overlapping sweeps
        coalesce=True,
        misfire_grace_time=settings.price_check_misfire_grace_seconds,
        replace_existing=True,
        kwargs={"cancel_event": cancel_event},
    )

    logger.info(f"Scheduler configured: price check every {interval} minutes")
    return scheduler
