"""Therapist post model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, Text
from telecare.database import Base


class TherapistPost(Base):
    __tablename__ = "therapist_posts"

    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("users.id"), index=True)
    content = Column(Text)
    tags = Column(String)  # comma separated
    created_at = Column(DateTime, default=datetime.now)
