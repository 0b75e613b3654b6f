"""Tests for scheduling and the command line entry point."""

import asyncio
import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from wishes_tracer.config import settings
from wishes_tracer.main import format_details, format_page, parse_args
from wishes_tracer.schemas import PriceSnapshotView, ProductDetails, ProductPage, ProductSummary
from wishes_tracer.worker.price_check import PriceCheckJob
from wishes_tracer.worker.scheduler import PRICE_CHECK_JOB_ID, setup_scheduler


class TestSetupScheduler:
    def test_registers_single_interval_job(self):
        job = PriceCheckJob(MagicMock(), MagicMock(), MagicMock())
        cancel = asyncio.Event()

        scheduler = setup_scheduler(job, cancel_event=cancel)

        jobs = scheduler.get_jobs()
        assert [j.id for j in jobs] == [PRICE_CHECK_JOB_ID]
        scheduled = jobs[0]
        assert isinstance(scheduled.trigger, IntervalTrigger)
        assert scheduled.trigger.interval.total_seconds() == settings.price_check_interval_minutes * 60
        assert scheduled.max_instances == 1
        assert scheduled.coalesce is True
        assert scheduled.kwargs == {"cancel_event": cancel}
        assert scheduled.func == job.run


class TestParseArgs:
    def test_defaults_to_service_mode(self):
        args = parse_args([])
        assert args.once is False
        assert args.track is None

    def test_once(self):
        assert parse_args(["--once"]).once is True

    def test_track(self):
        args = parse_args(["--track", "https://www.amazon.com.mx/dp/X"])
        assert args.track == "https://www.amazon.com.mx/dp/X"

    def test_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--once", "--track", "https://www.amazon.com.mx/dp/X"])

    def test_list_with_paging(self):
        args = parse_args(["--list", "--page", "2", "--page-size", "25", "--search", "kindle"])
        assert args.list is True
        assert (args.page, args.page_size, args.search) == (2, 25, "kindle")

    def test_show_parses_uuid(self):
        product_id = uuid.uuid4()
        assert parse_args(["--show", str(product_id)]).show == product_id

    def test_show_rejects_bad_id(self):
        with pytest.raises(SystemExit):
            parse_args(["--show", "not-a-uuid"])


PRODUCT_ID = uuid.UUID("00000000-0000-0000-0000-000000000007")


class TestFormatting:
    def test_format_page(self):
        page = ProductPage(
            items=[
                ProductSummary(
                    id=PRODUCT_ID,
                    name="Echo Dot",
                    vendor="Amazon",
                    current_price=Decimal("999.00"),
                    currency="MXN",
                    is_available=False,
                    is_active=True,
                )
            ],
            page=1,
            page_size=10,
            total_count=1,
        )

        text = format_page(page)

        assert "Echo Dot" in text and "unavailable" in text
        assert text.splitlines()[-1] == "Page 1 of 1 (1 products)"

    def test_format_details_lists_history(self):
        details = ProductDetails(
            id=PRODUCT_ID,
            name="Echo Dot",
            url="https://www.amazon.com.mx/dp/E1",
            vendor="Amazon",
            current_price=Decimal("899.00"),
            currency="MXN",
            is_available=True,
            is_active=True,
            last_checked_at=None,
            created_at=datetime(2026, 1, 1),
            price_history=[
                PriceSnapshotView(price=Decimal("999.00"), recorded_at=datetime(2026, 1, 2, 8, 30))
            ],
        )

        lines = format_details(details).splitlines()

        assert lines[0] == "Echo Dot (Amazon)"
        assert "Last checked: never" in lines[3]
        assert lines[-1] == "  2026-01-02 08:30  999.00"
