"""
Booking model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from app.core.db import Base

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    # No cascade: events with bookings are not deleted (see EventService.delete_event)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
