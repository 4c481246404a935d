"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from telecare.database import Base


class Appointment(Base):
    """Represents a requested or scheduled session."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), index=True)
    title = Column(String)
    description = Column(String)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    status = Column(String, default="pending")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
