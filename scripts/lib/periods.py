"""
Calendar window helpers for BDR Reporting Hub.

Every reporting window is an inclusive (start, end) pair of timezone-aware
UTC datetimes: start at 00:00:00, end at 23:59:59.999999.

    week_bounds(now, offset)     - ISO week, Monday to Sunday
    month_bounds(now, offset)    - calendar month
    quarter_bounds(now, offset)  - calendar quarter
"""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Tuple

from scripts.lib.utils import as_utc

Window = Tuple[datetime, datetime]

# Lower bound for "all history" windows
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def start_of_day(dt: datetime) -> datetime:
    return as_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    return as_utc(dt).replace(hour=23, minute=59, second=59, microsecond=999999)


def _add_months(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def week_bounds(now: datetime, offset: int = 0) -> Window:
    """Return (Monday 00:00, Sunday 23:59:59.999999) of the week containing `now`.

    offset=0  -> current week
    offset=-1 -> last week
    """
    monday = start_of_day(now) - timedelta(days=as_utc(now).weekday())
    monday += timedelta(weeks=offset)
    return monday, end_of_day(monday + timedelta(days=6))


def month_bounds(now: datetime, offset: int = 0) -> Window:
    """Return the first and last instant of the calendar month `offset` months from `now`."""
    now = as_utc(now)
    year, month = _add_months(now.year, now.month, offset)
    last_day = calendar.monthrange(year, month)[1]
    start = now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, end_of_day(start.replace(day=last_day))


def quarter_bounds(now: datetime, offset: int = 0) -> Window:
    """Return the first and last instant of the calendar quarter `offset` quarters from `now`."""
    now = as_utc(now)
    first_month = ((now.month - 1) // 3) * 3 + 1
    year, month = _add_months(now.year, first_month, offset * 3)
    start, _ = month_bounds(now.replace(year=year, month=month, day=1), 0)
    _, end = month_bounds(start, 2)
    return start, end


def quarter_label(dt: datetime) -> str:
    """'Q3 2025' style label."""
    return f"Q{(dt.month - 1) // 3 + 1} {dt.year}"


def week_label(dt: datetime) -> str:
    """'Jul 28' style label."""
    return dt.strftime("%b %d")


def month_label(dt: datetime) -> str:
    """'Jul 2025' style label."""
    return dt.strftime("%b %Y")
