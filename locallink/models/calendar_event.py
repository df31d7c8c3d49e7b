"""Calendar event model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from locallink.database import Base


def _new_event_id() -> str:
    return str(uuid.uuid4())


class CalendarEvent(Base):
    """An entry on a provider's calendar: a booking, blocked time, or personal time."""
    __tablename__ = "calendar_events"

    id = Column(String, primary_key=True, default=_new_event_id)
    provider_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    event_type = Column(String, nullable=False, default="booking")  # booking/blocked/personal
    status = Column(String, nullable=False, default="confirmed")  # confirmed/pending/cancelled
    booking_id = Column(String)
    customer_id = Column(String)
    location = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
