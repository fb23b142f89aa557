from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.core.clock import get_now
from bookings.routes.common import bad_request, database_unavailable, ensure_database_ready, get_db
from bookings.scheduling.calendar_builder import (
    CalendarEvent,
    InvalidCalendarQuery,
    build_calendar,
    month_bounds,
    resolve_target_month,
)
from bookings.services.availability_store import get_calendar_snapshot

router = APIRouter(tags=['calendar'])


class CalendarEventResponse(BaseModel):
    title: str
    start: datetime
    end: datetime | None = None
    all_day: bool = Field(alias='allDay')
    status: str
    background_color: str = Field(alias='backgroundColor')
    border_color: str = Field(alias='borderColor')

    class Config:
        populate_by_name = True


def to_event_response(event: CalendarEvent) -> CalendarEventResponse:
    return CalendarEventResponse(
        title=event.title,
        start=event.start,
        end=event.end,
        allDay=event.all_day,
        status=event.status,
        backgroundColor=event.background_color,
        borderColor=event.border_color,
    )


@router.get('', response_model=list[CalendarEventResponse], response_model_exclude_none=True)
def get_provider_calendar(
    provider_id: int | None = Query(default=None),
    month: int | None = Query(default=None),
    year: int | None = Query(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    if provider_id is None:
        raise bad_request('Provider ID is required.')

    try:
        target_year, target_month = resolve_target_month(month, year, now)
    except InvalidCalendarQuery as exc:
        raise bad_request(str(exc)) from exc

    ensure_database_ready()

    try:
        month_start, month_end = month_bounds(target_year, target_month)
        snapshot = get_calendar_snapshot(db, provider_id, month_start, month_end)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    events = build_calendar(
        target_year,
        target_month,
        snapshot.default_rules,
        snapshot.overrides,
        snapshot.blocked_dates,
        snapshot.bookings,
    )
    return [to_event_response(event) for event in events]
