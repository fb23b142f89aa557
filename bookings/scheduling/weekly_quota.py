from collections import Counter
from datetime import date
from typing import Iterable

from bookings.core import config


def _as_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def count_dates_per_week(selected_dates: Iterable[str | date]) -> Counter:
    """Count dates per (ISO week-year, ISO week number); weeks start on Monday."""
    weeks: Counter = Counter()
    for value in selected_dates:
        iso_year, iso_week, _ = _as_date(value).isocalendar()
        weeks[(iso_year, iso_week)] += 1
    return weeks


def is_valid_weekly_selection(selected_dates: Iterable[str | date], max_per_week: int | None = None) -> bool:
    limit = config.MAX_DAYS_PER_WEEK if max_per_week is None else max_per_week
    return all(count <= limit for count in count_dates_per_week(selected_dates).values())
