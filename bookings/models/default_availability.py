"""Default availability model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from bookings.database import Base


class DefaultAvailability(Base):
    """One start/end window applied to an explicit list of dates."""
    __tablename__ = "default_availability"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    selected_dates = Column(JSON, nullable=False, default=list)  # ["YYYY-MM-DD", ...]
    start_time = Column(String(8), nullable=False)  # HH:MM:SS
    end_time = Column(String(8), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
