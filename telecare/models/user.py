"""User account model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from telecare.database import Base


class User(Base):
    """Represents a login account; the role lives on the profile."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    created_at = Column(DateTime, default=datetime.now)
