"""Profile model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from telecare.database import Base


class Profile(Base):
    """Public details of a patient or expert."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True)
    full_name = Column(String)
    role = Column(String, index=True)  # patient/therapist/other expert roles
    status = Column(String, default="active")
    specialization = Column(String)
    bio = Column(String)
    phone_number = Column(String)
    avatar_url = Column(String)
    session_duration_minutes = Column(Integer)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
