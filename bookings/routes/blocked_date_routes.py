from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user
from bookings.core.clock import get_now, today_for
from bookings.models.blocked_date import BlockedDate
from bookings.models.user import User
from bookings.routes.common import bad_request, database_unavailable, ensure_database_ready, get_db
from bookings.scheduling.validation import is_past_date, is_valid_date
from bookings.services.availability_store import get_blocked_date_for_date

router = APIRouter(tags=['blocked-dates'])


class BlockedDateRequest(BaseModel):
    blocked_date: str | None = None
    reason: str | None = None


class BlockedDateResponse(BaseModel):
    id: int
    provider_id: int
    blocked_date: date
    reason: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def get_owned_blocked_date(db: Session, blocked_id: int, provider_id: int) -> BlockedDate:
    blocked = db.query(BlockedDate).filter(
        BlockedDate.id == blocked_id,
        BlockedDate.provider_id == provider_id,
    ).first()
    if not blocked:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Blocked date not found')
    return blocked


@router.post('', response_model=BlockedDateResponse, status_code=status.HTTP_201_CREATED)
def create_blocked_date(
    data: BlockedDateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    if not data.blocked_date:
        raise bad_request('Blocked date is required')

    if not is_valid_date(data.blocked_date):
        raise bad_request('Invalid date format (use YYYY-MM-DD)')

    if is_past_date(data.blocked_date, today_for(now)):
        raise bad_request('Cannot block dates in the past')

    blocked_day = date.fromisoformat(data.blocked_date)

    ensure_database_ready()

    try:
        if get_blocked_date_for_date(db, current_user.id, blocked_day):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This date is already blocked')

        blocked = BlockedDate(provider_id=current_user.id, blocked_date=blocked_day, reason=data.reason)
        db.add(blocked)
        db.commit()
        db.refresh(blocked)

        return blocked
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=list[BlockedDateResponse])
def list_blocked_dates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return db.query(BlockedDate).filter(
            BlockedDate.provider_id == current_user.id,
        ).order_by(BlockedDate.blocked_date.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.put('/{blocked_id}', response_model=BlockedDateResponse)
def update_blocked_date(
    blocked_id: int,
    data: BlockedDateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    new_date = None
    if data.blocked_date:
        if not is_valid_date(data.blocked_date):
            raise bad_request('Invalid date format')
        if is_past_date(data.blocked_date, today_for(now)):
            raise bad_request('Cannot reschedule to past date')
        new_date = date.fromisoformat(data.blocked_date)

    ensure_database_ready()

    try:
        blocked = get_owned_blocked_date(db, blocked_id, current_user.id)

        if new_date is not None:
            if get_blocked_date_for_date(db, current_user.id, new_date, exclude_id=blocked.id):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This date is already blocked')
            blocked.blocked_date = new_date
        if data.reason:
            blocked.reason = data.reason

        db.commit()
        db.refresh(blocked)

        return blocked
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/{blocked_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_date(
    blocked_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        blocked = get_owned_blocked_date(db, blocked_id, current_user.id)
        db.delete(blocked)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
