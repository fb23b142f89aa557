"""Monthly calendar construction.

For every UTC day of the target month the resolver decides whether the day is
blocked, closed by an override, open for a working window, or has no
availability. Open days are split into available and booked events around the
provider's confirmed bookings.
"""

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable

from bookings.core import config
from bookings.core.clock import as_utc
from bookings.scheduling.resolver import (
    Blocked,
    NoAvailability,
    OverrideBlocked,
    Window,
    build_index,
    date_key,
    resolve_day,
)

STATUS_BLOCKED = 'blocked'
STATUS_AVAILABLE = 'available'
STATUS_BOOKED = 'booked'

# (background, border)
BLOCKED_COLORS = ('#666666', '#444444')
OVERRIDE_BLOCKED_COLORS = ('#ff4444', '#cc0000')
AVAILABLE_COLORS = ('#00cc66', '#00994d')
BOOKED_COLORS = ('#4d88ff', '#0066cc')


class InvalidCalendarQuery(ValueError):
    pass


@dataclass(frozen=True)
class CalendarEvent:
    title: str
    start: datetime
    end: datetime | None
    all_day: bool
    status: str
    background_color: str
    border_color: str


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime


def resolve_target_month(month: int | None, year: int | None, now: datetime) -> tuple[int, int]:
    current = as_utc(now)
    target_month = current.month if month is None else month
    target_year = current.year if year is None else year

    if target_month < 1 or target_month > 12:
        raise InvalidCalendarQuery('Invalid month (1-12)')
    if target_year < config.MIN_CALENDAR_YEAR:
        raise InvalidCalendarQuery(f'Invalid year ({config.MIN_CALENDAR_YEAR} and later)')

    return target_year, target_month


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First instant and last second of the month, UTC, both inclusive."""
    days_in_month = calendar.monthrange(year, month)[1]
    month_start = datetime(year, month, 1, tzinfo=timezone.utc)
    month_end = datetime(year, month, days_in_month, 23, 59, 59, tzinfo=timezone.utc)
    return month_start, month_end


def merge_busy_intervals(bookings: Iterable[Any], work_start: datetime, work_end: datetime) -> list[BusyInterval]:
    clipped = []
    for booking in bookings:
        start = max(as_utc(booking.start_time), work_start)
        end = min(as_utc(booking.end_time), work_end)
        if end > start:
            clipped.append(BusyInterval(start=start, end=end))

    clipped.sort(key=lambda interval: interval.start)

    merged: list[BusyInterval] = []
    for interval in clipped:
        if merged and interval.start <= merged[-1].end:
            if interval.end > merged[-1].end:
                merged[-1] = BusyInterval(start=merged[-1].start, end=interval.end)
        else:
            merged.append(interval)

    return merged


def available_event(start: datetime, end: datetime) -> CalendarEvent:
    return CalendarEvent(
        title='Available',
        start=start,
        end=end,
        all_day=False,
        status=STATUS_AVAILABLE,
        background_color=AVAILABLE_COLORS[0],
        border_color=AVAILABLE_COLORS[1],
    )


def booked_event(start: datetime, end: datetime) -> CalendarEvent:
    return CalendarEvent(
        title='Booked',
        start=start,
        end=end,
        all_day=False,
        status=STATUS_BOOKED,
        background_color=BOOKED_COLORS[0],
        border_color=BOOKED_COLORS[1],
    )


def blocked_event(day: date, reason: str | None) -> CalendarEvent:
    return CalendarEvent(
        title=f'Blocked: {reason}',
        start=datetime.combine(day, time.min, tzinfo=timezone.utc),
        end=None,
        all_day=True,
        status=STATUS_BLOCKED,
        background_color=BLOCKED_COLORS[0],
        border_color=BLOCKED_COLORS[1],
    )


def override_blocked_event(day: date) -> CalendarEvent:
    return CalendarEvent(
        title='Unavailable (Override)',
        start=datetime.combine(day, time.min, tzinfo=timezone.utc),
        end=None,
        all_day=True,
        status=STATUS_BLOCKED,
        background_color=OVERRIDE_BLOCKED_COLORS[0],
        border_color=OVERRIDE_BLOCKED_COLORS[1],
    )


def window_events(window: Window, busy_intervals: list[BusyInterval]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    cursor = window.start

    for busy in busy_intervals:
        if busy.start > cursor:
            events.append(available_event(cursor, busy.start))
        events.append(booked_event(busy.start, busy.end))
        cursor = max(cursor, busy.end)

    if cursor < window.end:
        events.append(available_event(cursor, window.end))

    return events


def group_bookings_by_day(bookings: Iterable[Any]) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = defaultdict(list)
    for booking in bookings:
        if getattr(booking, 'status', 'confirmed') != 'confirmed':
            continue
        grouped[date_key(booking.start_time)].append(booking)
    return grouped


def build_calendar(
    year: int,
    month: int,
    default_rules: Iterable[Any],
    overrides: Iterable[Any],
    blocked_dates: Iterable[Any],
    bookings: Iterable[Any],
) -> list[CalendarEvent]:
    """Build every calendar event for the month, sorted by start.

    ``default_rules`` must be ordered newest first. Only confirmed bookings
    occupy time.
    """
    index = build_index(default_rules, overrides, blocked_dates)
    bookings_by_day = group_bookings_by_day(bookings)
    events: list[CalendarEvent] = []

    first_day = date(year, month, 1)
    for offset in range(calendar.monthrange(year, month)[1]):
        day = first_day + timedelta(days=offset)
        resolution = resolve_day(index, day)

        if isinstance(resolution, Blocked):
            events.append(blocked_event(day, resolution.reason))
        elif isinstance(resolution, OverrideBlocked):
            events.append(override_blocked_event(day))
        elif isinstance(resolution, Window):
            busy = merge_busy_intervals(
                bookings_by_day.get(day.isoformat(), []),
                resolution.start,
                resolution.end,
            )
            events.extend(window_events(resolution, busy))
        elif isinstance(resolution, NoAvailability):
            continue
        else:
            raise TypeError(f'Unhandled resolution {resolution!r}')

    events.sort(key=lambda event: event.start)
    return events
