"""Notification model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey, String
from telecare.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    title = Column(String)
    message = Column(String)
    type = Column(String, default="system")
    link = Column(String)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
