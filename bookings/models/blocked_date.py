"""Blocked date model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from bookings.database import Base


class BlockedDate(Base):
    """Represents a date the provider is fully closed."""
    __tablename__ = "blocked_date"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    blocked_date = Column(Date, nullable=False)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
