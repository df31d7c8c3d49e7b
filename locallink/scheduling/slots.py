"""
Next-available-slot search.

Scans generated availability day by day and returns the first open, unbooked
slot at least as long as the requested duration. Only the ``is_booked`` flag
of the generated slots is consulted; callers needing a guarantee against the
live calendar must also run the conflict detector.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Sequence

from locallink.scheduling.errors import InvalidDuration
from locallink.scheduling.timeslots import AvailabilitySlot, NextSlot

AvailabilitySource = Callable[[str, date, date], Sequence[AvailabilitySlot]]

DEFAULT_HORIZON_DAYS = 30


def find_next_available_slot(
    get_availability: AvailabilitySource,
    provider_id: str,
    duration_minutes: int,
    preferred_date: date | datetime | None = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> NextSlot | None:
    """
    Earliest slot of at least ``duration_minutes`` within the horizon.

    Returns None when nothing qualifies.
    """
    if duration_minutes <= 0:
        raise InvalidDuration(duration_minutes)

    start = preferred_date or datetime.now()
    start_date = start.date() if isinstance(start, datetime) else start
    end_date = start_date + timedelta(days=horizon_days)

    for day in get_availability(provider_id, start_date, end_date):
        for slot in day.time_slots:
            if slot.is_available and not slot.is_booked and slot.duration_minutes >= duration_minutes:
                return NextSlot(date=day.date, start_time=slot.start_time, end_time=slot.end_time)

    return None
