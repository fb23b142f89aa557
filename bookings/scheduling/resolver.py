"""Per-date availability resolution.

Merges default availability rules, date overrides and blocked dates into one
decision for a single UTC calendar date. Priority: blocked date, then a
closing override, then the working window from an opening override or the
default rules.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Union

from bookings.core import config
from bookings.core.clock import as_utc
from bookings.scheduling.validation import is_valid_time, parse_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Blocked:
    reason: str | None


@dataclass(frozen=True)
class OverrideBlocked:
    pass


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class NoAvailability:
    pass


Resolution = Union[Blocked, OverrideBlocked, Window, NoAvailability]


def date_key(value: str | date | datetime) -> str:
    if isinstance(value, datetime):
        return as_utc(value).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


@dataclass
class AvailabilityIndex:
    """Lookup maps keyed by ``YYYY-MM-DD`` built once per snapshot."""

    default_windows: dict[str, tuple[str, str]] = field(default_factory=dict)
    overrides: dict[str, Any] = field(default_factory=dict)
    blocked: dict[str, Any] = field(default_factory=dict)


def build_default_window_map(default_rules: Iterable[Any]) -> dict[str, tuple[str, str]]:
    """Map each selected date to its rule's (start, end).

    ``default_rules`` must be ordered newest first; the first rule to claim a
    date keeps it.
    """
    windows: dict[str, tuple[str, str]] = {}
    for rule in default_rules:
        selected_dates = rule.selected_dates
        if not isinstance(selected_dates, (list, tuple)):
            continue
        for selected in selected_dates:
            windows.setdefault(date_key(selected), (rule.start_time, rule.end_time))
    return windows


def build_index(
    default_rules: Iterable[Any],
    overrides: Iterable[Any],
    blocked_dates: Iterable[Any],
) -> AvailabilityIndex:
    return AvailabilityIndex(
        default_windows=build_default_window_map(default_rules),
        # last row wins if the store ever returns two rows for one date
        overrides={date_key(override.override_date): override for override in overrides},
        blocked={date_key(blocked.blocked_date): blocked for blocked in blocked_dates},
    )


def _checked_time(value: str | None, fallback: str, day_key: str) -> str:
    if is_valid_time(value):
        return value
    logger.warning('Malformed time %r on %s, falling back to %s', value, day_key, fallback)
    return fallback


def working_window(day: date, start_time: str, end_time: str) -> Window:
    work_start = datetime.combine(day, parse_time(start_time), tzinfo=timezone.utc)
    work_end = datetime.combine(day, parse_time(end_time), tzinfo=timezone.utc)
    if work_end <= work_start:
        # overnight window
        work_end += timedelta(days=1)
    return Window(start=work_start, end=work_end)


def resolve_day(index: AvailabilityIndex, day: date) -> Resolution:
    key = day.isoformat()

    blocked = index.blocked.get(key)
    if blocked is not None:
        return Blocked(reason=blocked.reason)

    override = index.overrides.get(key)
    if override is not None and not override.is_available:
        return OverrideBlocked()

    if override is not None:
        start_time, end_time = override.start_time, override.end_time
    elif key in index.default_windows:
        start_time, end_time = index.default_windows[key]
    else:
        return NoAvailability()

    start_time = _checked_time(start_time, config.DEFAULT_WINDOW_START, key)
    end_time = _checked_time(end_time, config.DEFAULT_WINDOW_END, key)
    return working_window(day, start_time, end_time)


def resolve_date(
    default_rules: Iterable[Any],
    overrides: Iterable[Any],
    blocked_dates: Iterable[Any],
    day: date,
) -> Resolution:
    return resolve_day(build_index(default_rules, overrides, blocked_dates), day)
