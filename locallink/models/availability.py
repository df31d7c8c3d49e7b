"""Provider availability model definitions."""

from sqlalchemy import Boolean, Column, Date, Integer, String
from locallink.database import Base


class ProviderSchedule(Base):
    """Per-provider scheduling settings."""
    __tablename__ = "provider_schedules"

    provider_id = Column(String, primary_key=True)
    closed_weekdays = Column(String, nullable=False, default="")  # e.g. "5,6"
    slot_minutes = Column(Integer, nullable=False, default=60)


class AvailabilityRule(Base):
    """One open window on a weekday of a provider's weekly schedule."""
    __tablename__ = "availability_rules"

    id = Column(Integer, primary_key=True)
    provider_id = Column(String, nullable=False, index=True)
    weekday = Column(Integer, nullable=False)  # Monday=0 .. Sunday=6
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)


class AvailabilityException(Base):
    """Overrides the weekly schedule for a single date."""
    __tablename__ = "availability_exceptions"

    id = Column(Integer, primary_key=True)
    provider_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    reason = Column(String)
