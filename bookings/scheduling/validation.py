"""Date and time validation primitives shared by the write routes and the booking validator."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from bookings.core import config
from bookings.core.clock import as_utc

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)$')


@dataclass(frozen=True)
class TimeSlotCheck:
    valid: bool
    message: str | None = None


def is_valid_date(value: str) -> bool:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value: str | None) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def parse_time(value: str) -> time:
    hours, minutes, seconds = (int(part) for part in value.split(':'))
    return time(hours, minutes, seconds)


def is_start_before_end(start_time: str, end_time: str) -> bool:
    if not is_valid_time(start_time) or not is_valid_time(end_time):
        return False
    return parse_time(start_time) < parse_time(end_time)


def is_past_date(value: str | date, today: date) -> bool:
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return value < today


def is_time_slot_in_future(instant: datetime, now: datetime) -> bool:
    return as_utc(instant) > as_utc(now)


def validate_time_slot(start: datetime, end: datetime, now: datetime) -> TimeSlotCheck:
    if not is_time_slot_in_future(start, now):
        return TimeSlotCheck(valid=False, message='Cannot book in the past')

    if as_utc(start) >= as_utc(end):
        return TimeSlotCheck(valid=False, message='End time must be after start time')

    if as_utc(end) - as_utc(start) < timedelta(minutes=config.MIN_BOOKING_MINUTES):
        return TimeSlotCheck(
            valid=False,
            message=f'Minimum booking duration is {config.MIN_BOOKING_MINUTES} minutes',
        )

    return TimeSlotCheck(valid=True)
