from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user
from bookings.core.clock import get_now, today_for
from bookings.models.availability_override import AvailabilityOverride
from bookings.models.user import User
from bookings.routes.common import bad_request, database_unavailable, ensure_database_ready, get_db
from bookings.scheduling.validation import is_past_date, is_valid_date
from bookings.services.availability_store import get_override_for_date

router = APIRouter(tags=['availability-overrides'])


class CreateOverrideRequest(BaseModel):
    override_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_available: bool = False


class UpdateOverrideRequest(BaseModel):
    override_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_available: bool | None = None


class OverrideResponse(BaseModel):
    id: int
    provider_id: int
    override_date: date
    start_time: str | None = None
    end_time: str | None = None
    is_available: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def validate_override_date(value: str | None, today: date) -> date:
    if not value:
        raise bad_request('Override date is required')

    if not is_valid_date(value):
        raise bad_request('Invalid date format (use YYYY-MM-DD)')

    if is_past_date(value, today):
        raise bad_request('Cannot override dates in the past')

    return date.fromisoformat(value)


def get_owned_override(db: Session, override_id: int, provider_id: int) -> AvailabilityOverride:
    override = db.query(AvailabilityOverride).filter(
        AvailabilityOverride.id == override_id,
        AvailabilityOverride.provider_id == provider_id,
    ).first()
    if not override:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Availability override not found')
    return override


@router.post('', response_model=OverrideResponse, status_code=status.HTTP_201_CREATED)
def create_override(
    data: CreateOverrideRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    override_date = validate_override_date(data.override_date, today_for(now))

    ensure_database_ready()

    try:
        if get_override_for_date(db, current_user.id, override_date):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Override for this date already exists',
            )

        override = AvailabilityOverride(
            provider_id=current_user.id,
            override_date=override_date,
            start_time=data.start_time,
            end_time=data.end_time,
            is_available=data.is_available,
        )
        db.add(override)
        db.commit()
        db.refresh(override)

        return override
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=list[OverrideResponse])
def list_overrides(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return db.query(AvailabilityOverride).filter(
            AvailabilityOverride.provider_id == current_user.id,
        ).order_by(AvailabilityOverride.override_date.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/{override_id}', response_model=OverrideResponse)
def update_override(
    override_id: int,
    data: UpdateOverrideRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    new_date = None
    if data.override_date:
        new_date = validate_override_date(data.override_date, today_for(now))

    ensure_database_ready()

    try:
        override = get_owned_override(db, override_id, current_user.id)

        if new_date is not None:
            if get_override_for_date(db, current_user.id, new_date, exclude_id=override.id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail='Override for this date already exists',
                )
            override.override_date = new_date
        if data.start_time is not None:
            override.start_time = data.start_time
        if data.end_time is not None:
            override.end_time = data.end_time
        if data.is_available is not None:
            override.is_available = data.is_available

        db.commit()
        db.refresh(override)

        return override
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/{override_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_override(
    override_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        override = get_owned_override(db, override_id, current_user.id)
        db.delete(override)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
