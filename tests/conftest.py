"""Shared fixtures: a fixed clock and record factories."""

import os
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

os.environ.setdefault("LOG_TO_FILE", "false")

from models.reporting_models import ActivityLog, FinanceEntry, PipelineItem  # noqa: E402

# Wednesday; ISO week Mon 2025-07-28 .. Sun 2025-08-03, Q3 2025
NOW = datetime(2025, 7, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_item():
    ids = count(1)

    def _make(**fields):
        fields.setdefault("id", next(ids))
        return PipelineItem(**fields)

    return _make


@pytest.fixture
def make_log():
    ids = count(1000)

    def _make(activity_type="Status_Change", timestamp=NOW, **fields):
        fields.setdefault("id", next(ids))
        return ActivityLog(activity_type=activity_type, timestamp=timestamp, **fields)

    return _make


@pytest.fixture
def booked_transition(make_log):
    """Status_Change out of Call Booked for a given item, offset from NOW."""

    def _make(new_status="Agreement - Profile", item_id=1, bdr="Amy", offset=timedelta(0)):
        return make_log(
            "Status_Change",
            NOW + offset,
            bdr=bdr,
            pipeline_item_id=item_id,
            previous_status="Call Booked",
            new_status=new_status,
        )

    return _make


@pytest.fixture
def make_finance():
    def _make(invoice_date=NOW, gbp_amount=1000.0, bdr="Amy", **fields):
        return FinanceEntry(invoice_date=invoice_date, gbp_amount=gbp_amount, bdr=bdr, **fields)

    return _make
