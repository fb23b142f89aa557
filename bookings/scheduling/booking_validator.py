"""Acceptance checks for new and rescheduled bookings.

A request is accepted when a default availability rule for the booking's UTC
date fully contains the requested times, or when an override opens that date.
The override's own start/end are not compared with the request here, unlike
the calendar builder which bounds the day to them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from bookings.core.clock import as_utc
from bookings.scheduling.resolver import date_key
from bookings.scheduling.validation import is_valid_time, validate_time_slot

UNAVAILABLE_MESSAGE = 'Provider is unavailable at this time.'
START_AFTER_END_MESSAGE = 'Start time must be before end time.'
OUTSIDE_DEFAULT_HOURS_MESSAGE = 'Provider is not available during these hours based on default availability.'
BLOCKED_DATE_MESSAGE = 'Provider is unavailable on this date.'
OVERRIDE_CLOSED_MESSAGE = 'Provider is unavailable on this date (override).'
OUTSIDE_OVERRIDE_HOURS_MESSAGE = "Booking time is outside the provider's override available hours."


@dataclass(frozen=True)
class BookingDecision:
    accepted: bool
    reason: str | None = None


@dataclass(frozen=True)
class BookingSlot:
    booking_date: str
    start_time: str
    end_time: str


def booking_slot(start: datetime, end: datetime) -> BookingSlot:
    """UTC calendar date of the start plus HH:MM:SS strings of both ends."""
    start = as_utc(start)
    end = as_utc(end)
    return BookingSlot(
        booking_date=start.date().isoformat(),
        start_time=start.strftime('%H:%M:%S'),
        end_time=end.strftime('%H:%M:%S'),
    )


def rule_contains_slot(rule: Any, slot: BookingSlot) -> bool:
    if not isinstance(rule.selected_dates, (list, tuple)):
        return False
    if slot.booking_date not in {date_key(value) for value in rule.selected_dates}:
        return False
    if not is_valid_time(rule.start_time) or not is_valid_time(rule.end_time):
        return False
    # zero-padded HH:MM:SS strings order chronologically
    return rule.start_time <= slot.start_time and rule.end_time >= slot.end_time


def find_covering_rule(default_rules: Iterable[Any], slot: BookingSlot) -> Any | None:
    for rule in default_rules:
        if rule_contains_slot(rule, slot):
            return rule
    return None


def evaluate_booking_request(
    start: datetime,
    end: datetime,
    default_rules: Iterable[Any],
    override: Any | None,
    now: datetime,
) -> BookingDecision:
    if as_utc(start) >= as_utc(end):
        return BookingDecision(accepted=False, reason=START_AFTER_END_MESSAGE)

    time_check = validate_time_slot(start, end, now)
    if not time_check.valid:
        return BookingDecision(accepted=False, reason=time_check.message)

    slot = booking_slot(start, end)
    covering_rule = find_covering_rule(default_rules, slot)
    override_opens_date = override is not None and bool(override.is_available)

    if covering_rule is None and not override_opens_date:
        return BookingDecision(accepted=False, reason=UNAVAILABLE_MESSAGE)

    return BookingDecision(accepted=True)


def evaluate_reschedule(
    start: datetime,
    end: datetime,
    default_rules: Iterable[Any],
    blocked: Any | None,
    override: Any | None,
) -> BookingDecision:
    """Check new times for an existing booking.

    Stricter than a new request: a default rule must always cover the slot, a
    blocked date or closing override rejects it, and an opening override's own
    start/end bound it when both are set.
    """
    if as_utc(start) >= as_utc(end):
        return BookingDecision(accepted=False, reason=START_AFTER_END_MESSAGE)

    slot = booking_slot(start, end)
    if find_covering_rule(default_rules, slot) is None:
        return BookingDecision(accepted=False, reason=OUTSIDE_DEFAULT_HOURS_MESSAGE)

    if blocked is not None:
        return BookingDecision(accepted=False, reason=BLOCKED_DATE_MESSAGE)

    if override is not None:
        if not override.is_available:
            return BookingDecision(accepted=False, reason=OVERRIDE_CLOSED_MESSAGE)
        if is_valid_time(override.start_time) and is_valid_time(override.end_time):
            if slot.start_time < override.start_time or slot.end_time > override.end_time:
                return BookingDecision(accepted=False, reason=OUTSIDE_OVERRIDE_HOURS_MESSAGE)

    return BookingDecision(accepted=True)
