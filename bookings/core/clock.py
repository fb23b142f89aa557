"""Injectable wall clock.

Routes depend on ``get_now`` so tests can pin the current instant by passing
``now=`` directly or overriding the dependency.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_now() -> datetime:
    return utc_now()


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def today_for(now: datetime) -> date:
    return as_utc(now).date()
