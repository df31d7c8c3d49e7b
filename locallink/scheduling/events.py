"""Calendar event shape consumed by the conflict detector."""

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, field_validator, model_validator

from locallink.scheduling.timeslots import ensure_interval, to_naive_utc

EventType = Literal['booking', 'blocked', 'personal']
EventStatus = Literal['confirmed', 'pending', 'cancelled']
EVENT_STATUSES = get_args(EventStatus)

CANCELLED = 'cancelled'


class CalendarEventData(BaseModel):
    id: str
    provider_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    event_type: EventType = 'booking'
    status: EventStatus = 'confirmed'
    booking_id: str | None = None
    customer_id: str | None = None
    location: str | None = None

    class Config:
        from_attributes = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_timezone(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode='after')
    def validate_interval(self) -> 'CalendarEventData':
        ensure_interval(self.start_time, self.end_time)
        return self

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED
