"""Date helpers for day record partitioning."""

from datetime import date, timedelta
from typing import Optional


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def today_iso(today: Optional[date] = None) -> str:
    """Today's local date as YYYY-MM-DD."""
    return format_date(today or date.today())


def previous_day_iso(day: str) -> str:
    """The calendar day before an ISO date."""
    return format_date(date.fromisoformat(day) - timedelta(days=1))
