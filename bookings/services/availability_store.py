"""Read queries feeding the calendar builder and the booking validator."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from bookings.models.availability_override import AvailabilityOverride
from bookings.models.blocked_date import BlockedDate
from bookings.models.booking import Booking
from bookings.models.default_availability import DefaultAvailability


@dataclass(frozen=True)
class CalendarSnapshot:
    default_rules: list[Any]
    overrides: list[Any]
    blocked_dates: list[Any]
    bookings: list[Any]


def _naive_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


def get_default_rules(db: Session, provider_id: int) -> list[DefaultAvailability]:
    return db.query(DefaultAvailability).filter(
        DefaultAvailability.provider_id == provider_id,
    ).order_by(DefaultAvailability.created_at.desc(), DefaultAvailability.id.desc()).all()


def get_overrides_between(db: Session, provider_id: int, start: date, end: date) -> list[AvailabilityOverride]:
    return db.query(AvailabilityOverride).filter(
        AvailabilityOverride.provider_id == provider_id,
        AvailabilityOverride.override_date >= start,
        AvailabilityOverride.override_date <= end,
    ).order_by(AvailabilityOverride.id.asc()).all()


def get_blocked_dates_between(db: Session, provider_id: int, start: date, end: date) -> list[BlockedDate]:
    return db.query(BlockedDate).filter(
        BlockedDate.provider_id == provider_id,
        BlockedDate.blocked_date >= start,
        BlockedDate.blocked_date <= end,
    ).order_by(BlockedDate.id.asc()).all()


def get_confirmed_bookings_between(db: Session, provider_id: int, start: datetime, end: datetime) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.provider_id == provider_id,
        Booking.status == 'confirmed',
        Booking.start_time >= _naive_utc(start),
        Booking.start_time <= _naive_utc(end),
    ).order_by(Booking.start_time.asc()).all()


def get_calendar_snapshot(db: Session, provider_id: int, month_start: datetime, month_end: datetime) -> CalendarSnapshot:
    # Independent reads over disjoint tables; order does not matter.
    return CalendarSnapshot(
        default_rules=get_default_rules(db, provider_id),
        overrides=get_overrides_between(db, provider_id, month_start.date(), month_end.date()),
        blocked_dates=get_blocked_dates_between(db, provider_id, month_start.date(), month_end.date()),
        bookings=get_confirmed_bookings_between(db, provider_id, month_start, month_end),
    )


def get_override_for_date(
    db: Session,
    provider_id: int,
    override_date: date,
    exclude_id: int | None = None,
) -> AvailabilityOverride | None:
    query = db.query(AvailabilityOverride).filter(
        AvailabilityOverride.provider_id == provider_id,
        AvailabilityOverride.override_date == override_date,
    )
    if exclude_id is not None:
        query = query.filter(AvailabilityOverride.id != exclude_id)
    return query.order_by(AvailabilityOverride.id.desc()).first()


def get_blocked_date_for_date(
    db: Session,
    provider_id: int,
    blocked_date: date,
    exclude_id: int | None = None,
) -> BlockedDate | None:
    query = db.query(BlockedDate).filter(
        BlockedDate.provider_id == provider_id,
        BlockedDate.blocked_date == blocked_date,
    )
    if exclude_id is not None:
        query = query.filter(BlockedDate.id != exclude_id)
    return query.first()


def find_rules_using_dates(
    db: Session,
    provider_id: int,
    selected_dates: list[str],
    exclude_id: int | None = None,
) -> list[str]:
    """Dates from ``selected_dates`` already claimed by another rule of the provider."""
    query = db.query(DefaultAvailability).filter(DefaultAvailability.provider_id == provider_id)
    if exclude_id is not None:
        query = query.filter(DefaultAvailability.id != exclude_id)

    existing_dates: set[str] = set()
    for rule in query.all():
        existing_dates.update(rule.selected_dates or [])

    return [selected for selected in selected_dates if selected in existing_dates]
