"""
Availability generation.

Turns a provider's weekly schedule into per-day slot lists:
- Closed weekdays produce no day at all
- Each open window is cut into consecutive ``slot_minutes`` slots
- Date exceptions close a day (slots kept, none available) or open a closed weekday
- Existing events mark slots booked (``booking``) or unavailable (``blocked``, ``personal``)

Weekdays follow ``date.weekday()``: Monday is 0, Sunday is 6.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Literal

from pydantic import BaseModel, field_validator

from locallink.scheduling.events import CalendarEventData
from locallink.scheduling.timeslots import (
    AvailabilitySlot,
    TimeSlot,
    TimeWindow,
    format_clock,
    overlaps,
)

WEEKDAYS = range(7)
DEFAULT_WINDOWS = (('09:00', '12:00'), ('14:00', '18:00'))


def _validate_weekday(weekday: int) -> int:
    if weekday not in WEEKDAYS:
        raise ValueError('Weekdays run from 0 (Monday) to 6 (Sunday).')
    return weekday


class WeeklySchedule(BaseModel):
    windows: dict[int, list[TimeWindow]] = {}
    closed_weekdays: frozenset[int] = frozenset()
    slot_minutes: int = 60

    @field_validator('windows')
    @classmethod
    def validate_windows(cls, value: dict[int, list[TimeWindow]]) -> dict[int, list[TimeWindow]]:
        for weekday in value:
            _validate_weekday(weekday)
        return value

    @field_validator('closed_weekdays')
    @classmethod
    def validate_closed_weekdays(cls, value: frozenset[int]) -> frozenset[int]:
        for weekday in value:
            _validate_weekday(weekday)
        return value

    @field_validator('slot_minutes')
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Slot length must be a positive number of minutes.')
        return value


class ScheduleException(BaseModel):
    date: date
    is_available: bool = False
    reason: str | None = None

    class Config:
        from_attributes = True


class RecurrencePattern(BaseModel):
    type: Literal['daily', 'weekly', 'monthly']
    interval: int = 1
    days_of_week: list[int] | None = None
    time_slots: list[TimeWindow]

    @field_validator('interval')
    @classmethod
    def validate_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError('Recurrence interval must be at least 1.')
        return value

    @field_validator('days_of_week')
    @classmethod
    def validate_days_of_week(cls, value: list[int] | None) -> list[int] | None:
        if value is not None:
            for weekday in value:
                _validate_weekday(weekday)
        return value


def default_weekly_schedule(
    closed_weekdays: Iterable[int] = (6,),
    slot_minutes: int = 60,
) -> WeeklySchedule:
    """Morning 09:00-12:00 and afternoon 14:00-18:00 every open day."""
    windows = [TimeWindow(start_time=start, end_time=end) for start, end in DEFAULT_WINDOWS]
    return WeeklySchedule(
        windows={weekday: list(windows) for weekday in WEEKDAYS},
        closed_weekdays=frozenset(closed_weekdays),
        slot_minutes=slot_minutes,
    )


def merge_windows(windows: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Sort windows and join the ones that overlap or touch."""
    ordered = sorted(windows, key=lambda window: window.start_minutes)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start_minutes <= last.end_minutes:
            if current.end_minutes > last.end_minutes:
                merged[-1] = TimeWindow(start_time=last.start_time, end_time=current.end_time)
        else:
            merged.append(current)

    return merged


def split_window(window: TimeWindow, slot_minutes: int) -> list[tuple[int, int]]:
    """Consecutive ``(start, end)`` minute pairs; a short remainder is dropped."""
    return [
        (start, start + slot_minutes)
        for start in range(window.start_minutes, window.end_minutes - slot_minutes + 1, slot_minutes)
    ]


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _iter_days(start_date: date, end_date: date):
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def _build_slot(
    day: date,
    start_minutes: int,
    end_minutes: int,
    day_open: bool,
    day_events: list[CalendarEventData],
) -> TimeSlot:
    day_start = datetime.combine(day, datetime.min.time())
    slot_start = day_start + timedelta(minutes=start_minutes)
    slot_end = day_start + timedelta(minutes=end_minutes)

    is_available = day_open
    booking = None
    for event in day_events:
        if not overlaps(slot_start, slot_end, event.start_time, event.end_time):
            continue
        if event.event_type == 'booking':
            booking = booking or event
        else:
            is_available = False

    # A slot can only be booked if it was available to book.
    is_booked = is_available and booking is not None

    return TimeSlot(
        start_time=format_clock(start_minutes),
        end_time=format_clock(end_minutes),
        is_available=is_available,
        is_booked=is_booked,
        booking_id=(booking.booking_id or booking.id) if is_booked else None,
    )


def generate_availability(
    schedule: WeeklySchedule,
    start_date: date | datetime,
    end_date: date | datetime,
    events: Iterable[CalendarEventData] = (),
    exceptions: Iterable[ScheduleException] = (),
    include_cancelled: bool = True,
) -> list[AvailabilitySlot]:
    """
    Build the provider's slots for every day in ``[start_date, end_date]``.

    Time of day on ``start_date``/``end_date`` is ignored. An inverted range
    yields an empty list.
    """
    start_date, end_date = _as_date(start_date), _as_date(end_date)

    exceptions_by_date = {exception.date: exception for exception in exceptions}
    relevant_events = [
        event for event in events
        if include_cancelled or not event.is_cancelled
    ]

    days: list[AvailabilitySlot] = []
    for day in _iter_days(start_date, end_date):
        weekday = day.weekday()
        exception = exceptions_by_date.get(day)

        is_closed_weekday = weekday in schedule.closed_weekdays
        if is_closed_weekday and not (exception and exception.is_available):
            continue

        day_open = exception is None or exception.is_available

        day_start = datetime.combine(day, datetime.min.time())
        day_end = day_start + timedelta(days=1)
        day_events = [
            event for event in relevant_events
            if overlaps(day_start, day_end, event.start_time, event.end_time)
        ]

        time_slots = [
            _build_slot(day, slot_start, slot_end, day_open, day_events)
            for window in merge_windows(schedule.windows.get(weekday, []))
            for slot_start, slot_end in split_window(window, schedule.slot_minutes)
        ]

        days.append(AvailabilitySlot(date=day, time_slots=time_slots))

    return days


def _month_dates(start_date: date, end_date: date, interval: int):
    offset = 0
    while True:
        year, month_index = divmod(start_date.month - 1 + offset, 12)
        year += start_date.year
        month = month_index + 1
        if date(year, month, 1) > end_date:
            return
        if start_date.day <= calendar.monthrange(year, month)[1]:
            candidate = date(year, month, start_date.day)
            if candidate <= end_date:
                yield candidate
        offset += interval


def expand_recurrence(
    start_date: date | datetime,
    end_date: date | datetime,
    pattern: RecurrencePattern,
) -> list[AvailabilitySlot]:
    """Materialize a recurring pattern; every produced slot is open and unbooked."""
    start_date, end_date = _as_date(start_date), _as_date(end_date)

    if pattern.type == 'daily':
        dates = [
            day for index, day in enumerate(_iter_days(start_date, end_date))
            if index % pattern.interval == 0
        ]
    elif pattern.type == 'weekly':
        allowed = set(pattern.days_of_week) if pattern.days_of_week is not None else set(WEEKDAYS)
        dates = [day for day in _iter_days(start_date, end_date) if day.weekday() in allowed]
    else:
        dates = list(_month_dates(start_date, end_date, pattern.interval))

    return [
        AvailabilitySlot(
            date=day,
            time_slots=[
                TimeSlot(start_time=window.start_time, end_time=window.end_time)
                for window in pattern.time_slots
            ],
        )
        for day in dates
    ]
