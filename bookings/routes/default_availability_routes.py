import calendar
import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user
from bookings.core import config
from bookings.core.clock import get_now, today_for
from bookings.models.default_availability import DefaultAvailability
from bookings.models.user import User
from bookings.routes.common import bad_request, database_unavailable, ensure_database_ready, get_db
from bookings.scheduling.validation import is_past_date, is_start_before_end, is_valid_date, is_valid_time
from bookings.scheduling.weekly_quota import is_valid_weekly_selection
from bookings.services.availability_store import find_rules_using_dates

router = APIRouter(tags=['default-availability'])

logger = logging.getLogger(__name__)


class DefaultAvailabilityRequest(BaseModel):
    selected_dates: list[str]
    start_time: str
    end_time: str

    @field_validator('selected_dates')
    @classmethod
    def strip_dates(cls, value: list[str]) -> list[str]:
        return [selected.strip() for selected in value]


class DefaultAvailabilityResponse(BaseModel):
    id: int
    provider_id: int
    selected_dates: list[str]
    start_time: str
    end_time: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def validate_default_availability_input(data: DefaultAvailabilityRequest, today: date) -> None:
    if not data.selected_dates or not data.start_time or not data.end_time:
        raise bad_request('Invalid input: selected_dates must be an array with at least one date')

    if not all(is_valid_date(selected) for selected in data.selected_dates):
        raise bad_request('Invalid date format (use YYYY-MM-DD)')

    if any(is_past_date(selected, today) for selected in data.selected_dates):
        raise bad_request('Selected dates cannot be in the past')

    if not is_valid_time(data.start_time) or not is_valid_time(data.end_time):
        raise bad_request('Invalid time format (use HH:MM:SS)')

    if not is_start_before_end(data.start_time, data.end_time):
        raise bad_request('Start time must be before end time')

    if not is_valid_weekly_selection(data.selected_dates):
        raise bad_request(f'You can only select up to {config.MAX_DAYS_PER_WEEK} days in a week')

    horizon = add_months(today, config.MAX_MONTHS_AHEAD)
    if any(date.fromisoformat(selected) > horizon for selected in data.selected_dates):
        raise bad_request(f'Availability cannot exceed {config.MAX_MONTHS_AHEAD} months in the future')


def reject_duplicate_dates(db: Session, provider_id: int, selected_dates: list[str], exclude_id: int | None = None) -> None:
    duplicates = find_rules_using_dates(db, provider_id, selected_dates, exclude_id=exclude_id)
    if duplicates:
        raise bad_request(
            'Duplicate availability: You already have an availability entry for the following dates: '
            + ', '.join(duplicates)
        )


def get_owned_rule(db: Session, availability_id: int, provider_id: int) -> DefaultAvailability:
    rule = db.query(DefaultAvailability).filter(
        DefaultAvailability.id == availability_id,
        DefaultAvailability.provider_id == provider_id,
    ).first()
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Availability not found')
    return rule


@router.post('', response_model=DefaultAvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_default_availability(
    data: DefaultAvailabilityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    validate_default_availability_input(data, today_for(now))

    ensure_database_ready()

    try:
        reject_duplicate_dates(db, current_user.id, data.selected_dates)

        rule = DefaultAvailability(
            provider_id=current_user.id,
            selected_dates=data.selected_dates,
            start_time=data.start_time,
            end_time=data.end_time,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)

        logger.info('Provider %s created availability for %s dates', current_user.id, len(data.selected_dates))
        return rule
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=list[DefaultAvailabilityResponse])
def list_default_availability(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return db.query(DefaultAvailability).filter(
            DefaultAvailability.provider_id == current_user.id,
        ).order_by(DefaultAvailability.created_at.desc(), DefaultAvailability.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/{availability_id}', response_model=DefaultAvailabilityResponse)
def update_default_availability(
    availability_id: int,
    data: DefaultAvailabilityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    validate_default_availability_input(data, today_for(now))

    ensure_database_ready()

    try:
        rule = get_owned_rule(db, availability_id, current_user.id)
        reject_duplicate_dates(db, current_user.id, data.selected_dates, exclude_id=rule.id)

        rule.selected_dates = data.selected_dates
        rule.start_time = data.start_time
        rule.end_time = data.end_time
        db.commit()
        db.refresh(rule)

        return rule
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/{availability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_default_availability(
    availability_id: int,
    selected_date: str | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        rule = get_owned_rule(db, availability_id, current_user.id)

        if selected_date:
            remaining = [selected for selected in rule.selected_dates if selected != selected_date]
            if remaining:
                rule.selected_dates = remaining
            else:
                db.delete(rule)
        else:
            db.delete(rule)

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
