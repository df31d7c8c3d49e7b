"""Calendar summary figures for a provider dashboard."""

from datetime import date, datetime, timedelta
from typing import Iterable

from pydantic import BaseModel

from locallink.scheduling.events import CalendarEventData


class CalendarStats(BaseModel):
    total_events: int = 0
    bookings: int = 0
    blocked_time: int = 0
    upcoming_events: int = 0
    busy_days: int = 0


def month_bounds(day: date) -> tuple[datetime, datetime]:
    """``[first day of the month, first day of the next month)`` as datetimes."""
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return datetime.combine(first, datetime.min.time()), datetime.combine(next_month, datetime.min.time())


def summarize_events(events: Iterable[CalendarEventData], now: datetime | None = None) -> CalendarStats:
    now = now or datetime.now()
    events = list(events)
    return CalendarStats(
        total_events=len(events),
        bookings=sum(1 for event in events if event.event_type == 'booking'),
        blocked_time=sum(1 for event in events if event.event_type == 'blocked'),
        upcoming_events=sum(1 for event in events if event.start_time > now),
        busy_days=len({event.start_time.date() for event in events}),
    )
