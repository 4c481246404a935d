"""Availability model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey, Time
from telecare.database import Base


class AvailabilityWindow(Base):
    """A recurring weekly window in which a therapist accepts bookings."""
    __tablename__ = "therapist_availability"

    id = Column(Integer, primary_key=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), index=True)
    day_of_week = Column(Integer)  # 0 = Sunday
    start_time = Column(Time)
    end_time = Column(Time)
    is_available = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)
