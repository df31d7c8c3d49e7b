"""Wall-clock slot types and the interval arithmetic shared by the scheduler.

Times of day travel as ``"HH:MM"`` strings (24-hour clock). Every interval is
half-open: it contains its start and excludes its end, so back-to-back slots
never overlap.
"""

import re
from datetime import date, datetime, timezone

from pydantic import BaseModel, computed_field, field_validator, model_validator

from locallink.scheduling.errors import InvalidInterval

_CLOCK_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')


def parse_clock(value: str) -> int:
    """Return minutes since midnight for an ``"HH:MM"`` string.

    ``"24:00"`` is accepted as the end of the day.
    """
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f'Invalid time {value!r}, expected HH:MM.')

    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValueError(f'Invalid time {value!r}, expected HH:MM.')

    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    hours, remainder = divmod(minutes, 60)
    return f'{hours:02d}:{remainder:02d}'


def overlaps(first_start, first_end, second_start, second_end) -> bool:
    """Half-open intersection test; works for any ordered values."""
    return first_start < second_end and first_end > second_start


def to_naive_utc(value):
    """Datetimes are stored as naive UTC; offset-aware input is converted, anything else passes through."""
    if isinstance(value, datetime) and value.utcoffset() is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def ensure_interval(start, end) -> None:
    if to_naive_utc(end) <= to_naive_utc(start):
        raise InvalidInterval(start, end)


class TimeWindow(BaseModel):
    """An open window within a day, e.g. 09:00-12:00."""

    start_time: str
    end_time: str

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock(cls, value: str) -> str:
        return format_clock(parse_clock(value))

    @model_validator(mode='after')
    def validate_order(self) -> 'TimeWindow':
        ensure_interval(parse_clock(self.start_time), parse_clock(self.end_time))
        return self

    @property
    def start_minutes(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_clock(self.end_time)


class TimeSlot(TimeWindow):
    """A single bookable window within one day."""

    is_available: bool = True
    is_booked: bool = False
    booking_id: str | None = None

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


class AvailabilitySlot(BaseModel):
    """All slots of one calendar day, in chronological order."""

    date: date
    time_slots: list[TimeSlot] = []

    @computed_field
    @property
    def is_available(self) -> bool:
        return any(slot.is_available for slot in self.time_slots)


class NextSlot(BaseModel):
    date: date
    start_time: str
    end_time: str
