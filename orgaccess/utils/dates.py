"""
Date helpers shared by the stores and workflows.
All timestamps are naive UTC, matching how they are persisted.
"""
import calendar
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def period_tag(moment: datetime) -> str:
    """Year-month tag of the monthly usage window, e.g. '2026-10'."""
    return f"{moment.year:04d}-{moment.month:02d}"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the end of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def month_bounds(moment: datetime):
    """Return [start, end) of the calendar month containing moment."""
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, add_months(start, 1)
