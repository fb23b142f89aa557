"""Booking model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from bookings.database import Base

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")

# status -> statuses it may move to
BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"cancelled", "completed"},
    "cancelled": set(),
    "completed": set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


class Booking(Base):
    """Represents a booking request against a provider. Instants are stored in UTC."""
    __tablename__ = "booking"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, default="pending", nullable=False)
    last_updated_by = Column(Integer, nullable=True)
    last_action = Column(String, nullable=True)  # updated/cancelled/rescheduled
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
