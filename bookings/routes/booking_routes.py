import logging
from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.auth.dependencies import get_current_user
from bookings.core.clock import as_utc, get_now
from bookings.models.booking import ACTIVE_BOOKING_STATUSES, BOOKING_STATUSES, Booking, can_transition
from bookings.models.user import User
from bookings.routes.common import bad_request, database_unavailable, ensure_database_ready, get_db
from bookings.scheduling.booking_validator import (
    BookingDecision,
    booking_slot,
    evaluate_booking_request,
    evaluate_reschedule,
)
from bookings.services.availability_store import (
    get_blocked_date_for_date,
    get_default_rules,
    get_override_for_date,
)

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)


class CreateBookingRequest(BaseModel):
    provider_id: int
    start_time: datetime
    end_time: datetime
    service_id: int | None = None


class UpdateBookingRequest(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    service_id: int | None = None


class BookingActionRequest(BaseModel):
    action: Literal['confirm', 'cancel']


class BookingResponse(BaseModel):
    id: int
    provider_id: int
    user_id: int
    service_id: int | None = None
    start_time: datetime
    end_time: datetime
    status: str
    last_action: str | None = None

    class Config:
        from_attributes = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


def check_provider_availability(
    db: Session,
    provider_id: int,
    start_time: datetime,
    end_time: datetime,
    now: datetime,
) -> BookingDecision:
    booking_date = date.fromisoformat(booking_slot(start_time, end_time).booking_date)
    default_rules = get_default_rules(db, provider_id)
    override = get_override_for_date(db, provider_id, booking_date)
    return evaluate_booking_request(start_time, end_time, default_rules, override, now)


def check_reschedule(db: Session, provider_id: int, start_time: datetime, end_time: datetime) -> BookingDecision:
    booking_date = date.fromisoformat(booking_slot(start_time, end_time).booking_date)
    return evaluate_reschedule(
        start_time,
        end_time,
        get_default_rules(db, provider_id),
        get_blocked_date_for_date(db, provider_id, booking_date),
        get_override_for_date(db, provider_id, booking_date),
    )


def _stored(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Booking not found.')
    return booking


@router.get('', response_model=list[BookingResponse])
def list_bookings(
    status_filter: str | None = Query(default=None, alias='status'),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if status_filter and status_filter not in BOOKING_STATUSES:
        raise bad_request('Invalid status filter.')

    ensure_database_ready()

    try:
        query = db.query(Booking).filter(
            or_(Booking.user_id == current_user.id, Booking.provider_id == current_user.id),
        )
        if status_filter:
            query = query.filter(Booking.status == status_filter)
        if start_date is not None:
            query = query.filter(Booking.start_time >= _stored(start_date))
        if end_date is not None:
            query = query.filter(Booking.start_time <= _stored(end_date))

        return query.order_by(Booking.start_time.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        decision = check_provider_availability(db, data.provider_id, data.start_time, data.end_time, now)
        if not decision.accepted:
            db.rollback()
            logger.info('Rejected booking for provider %s: %s', data.provider_id, decision.reason)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=decision.reason)

        booking = Booking(
            provider_id=data.provider_id,
            user_id=current_user.id,
            service_id=data.service_id,
            start_time=_stored(data.start_time),
            end_time=_stored(data.end_time),
            status='pending',
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)

        logger.info('Booking %s requested for provider %s', booking.id, data.provider_id)
        return booking
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.put('/{booking_id}', response_model=BookingResponse)
def reschedule_booking(
    booking_id: int,
    data: UpdateBookingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)

        if booking.provider_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the service provider can update this booking.',
            )

        new_start = data.start_time or booking.start_time
        new_end = data.end_time or booking.end_time

        decision = check_reschedule(db, booking.provider_id, new_start, new_end)
        if not decision.accepted:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=decision.reason)

        conflict = db.query(Booking).filter(
            Booking.id != booking.id,
            Booking.provider_id == booking.provider_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_time < _stored(new_end),
            Booking.end_time > _stored(new_start),
        ).first()
        if conflict:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Provider already has a booking during this time.',
            )

        booking.start_time = _stored(new_start)
        booking.end_time = _stored(new_end)
        if data.service_id:
            booking.service_id = data.service_id
        booking.last_updated_by = current_user.id
        booking.last_action = 'rescheduled'
        db.commit()
        db.refresh(booking)

        logger.info('Booking %s rescheduled by provider %s', booking.id, current_user.id)
        return booking
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{booking_id}/action', response_model=BookingResponse)
def confirm_or_cancel_booking(
    booking_id: int,
    data: BookingActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)

        if booking.provider_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the service provider can modify this booking.',
            )

        target_status = 'confirmed' if data.action == 'confirm' else 'cancelled'
        if not can_transition(booking.status, target_status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Cannot {data.action} a {booking.status} booking.',
            )

        if target_status == 'confirmed':
            conflict = db.query(Booking).filter(
                Booking.id != booking.id,
                Booking.provider_id == booking.provider_id,
                Booking.status == 'confirmed',
                Booking.start_time < booking.end_time,
                Booking.end_time > booking.start_time,
            ).first()
            if conflict:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='You already have another booking at this time.',
                )

        booking.status = target_status
        booking.last_updated_by = current_user.id
        booking.last_action = 'updated' if target_status == 'confirmed' else 'cancelled'
        db.commit()
        db.refresh(booking)

        return booking
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{booking_id}/cancel', response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)

        if booking.user_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Unauthorized to cancel this booking',
            )

        if not can_transition(booking.status, 'cancelled'):
            raise bad_request('Booking cannot be cancelled')

        booking.status = 'cancelled'
        booking.last_updated_by = current_user.id
        booking.last_action = 'cancelled'
        db.commit()
        db.refresh(booking)

        logger.info('Booking %s cancelled by user %s', booking.id, current_user.id)
        return booking
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{booking_id}/attend', response_model=BookingResponse)
def attend_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(db, booking_id)

        if booking.provider_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the service provider can attend to this booking.',
            )

        if not can_transition(booking.status, 'completed'):
            raise bad_request('Booking must be confirmed before it can be attended.')

        booking.status = 'completed'
        booking.last_updated_by = current_user.id
        booking.last_action = 'updated'
        db.commit()
        db.refresh(booking)

        return booking
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
