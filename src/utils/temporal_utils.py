"""
Temporal Utility Functions.

This module provides utility functions for working with dates and calendar
months, particularly for spending buckets and renewal forecasts.
"""

import math
from datetime import date, datetime, time, timezone
from typing import List, Sequence

SECONDS_PER_DAY = 24 * 60 * 60

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def month_key(d: date) -> str:
    """Return the calendar month of a date as YYYY-MM."""
    return f"{d.year:04d}-{d.month:02d}"


def month_start_from_key(key: str) -> date:
    """Return the first day of the month for a YYYY-MM key."""
    year, month = key.split("-")
    return date(int(year), int(month), 1)


def month_label(key: str) -> str:
    """Return a short label such as 'Jan 2024' for a YYYY-MM key."""
    start = month_start_from_key(key)
    return f"{MONTH_ABBREVIATIONS[start.month - 1]} {start.year}"


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end precedes start)."""
    return (end - start).days


def calculate_intervals(dates: Sequence[date]) -> List[int]:
    """
    Calculate day intervals between consecutive dates.

    Args:
        dates: Chronologically sorted dates

    Returns:
        List of intervals in days, one shorter than the input
    """
    return [days_between(dates[i], dates[i + 1]) for i in range(len(dates) - 1)]


def start_of_day_utc(d: date) -> datetime:
    """Midnight UTC at the start of the given date."""
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def days_until(target: date, now: datetime) -> int:
    """
    Days from now until the target date, rounded up.

    The target is read as midnight UTC, so a target of today yields 0 for any
    time later the same day.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    delta = (start_of_day_utc(target) - now).total_seconds()
    # ceil(-0.4) is -0.0; int() folds it to 0
    return int(math.ceil(delta / SECONDS_PER_DAY))
