"""
Conflict detection for a provider's calendar.

A candidate interval conflicts with an event when the two half-open intervals
intersect: ``candidate.start < event.end and candidate.end > event.start``.
Touching intervals (one ends exactly when the other starts) do not conflict.

Checking and then writing are two separate steps here; callers that need the
pair to be atomic go through ``services.calendar_service.reserve_event``.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Sequence

from locallink.scheduling.errors import DependencyFailure
from locallink.scheduling.events import CalendarEventData
from locallink.scheduling.timeslots import ensure_interval, overlaps, to_naive_utc

logger = logging.getLogger(__name__)

EventFetcher = Callable[[str, datetime, datetime], Sequence[CalendarEventData]]

DEFAULT_MAX_EVENT_DURATION = timedelta(days=1)


def fetch_window(
    start_time: datetime,
    end_time: datetime,
    max_event_duration: timedelta = DEFAULT_MAX_EVENT_DURATION,
) -> tuple[datetime, datetime]:
    """Widen ``[start_time, end_time]`` so events longer than the query are still fetched."""
    return start_time - max_event_duration, end_time + max_event_duration


def find_conflicts(
    fetch_events: EventFetcher,
    provider_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_event_id: str | None = None,
    include_cancelled: bool = True,
    max_event_duration: timedelta = DEFAULT_MAX_EVENT_DURATION,
) -> list[CalendarEventData]:
    """
    Return the provider's events that overlap ``[start_time, end_time)``.

    Args:
        fetch_events: collaborator returning the provider's events in a window
        provider_id: owner of the calendar
        start_time: candidate start
        end_time: candidate end, strictly after ``start_time``
        exclude_event_id: event being edited, never reported against itself
        include_cancelled: whether cancelled events still occupy the calendar
        max_event_duration: padding applied to the fetch window

    Returns:
        Overlapping events in the order the fetcher returned them. An empty
        list means the interval is free.

    Raises:
        InvalidInterval: ``end_time <= start_time``
        DependencyFailure: the fetcher failed
    """
    ensure_interval(start_time, end_time)
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)

    window_start, window_end = fetch_window(start_time, end_time, max_event_duration)

    try:
        events = fetch_events(provider_id, window_start, window_end)
    except DependencyFailure:
        raise
    except Exception as exc:
        raise DependencyFailure(f'Could not fetch calendar events for provider {provider_id}.') from exc

    conflicts = [
        event
        for event in events
        if event.id != exclude_event_id
        and (include_cancelled or not event.is_cancelled)
        and overlaps(start_time, end_time, event.start_time, event.end_time)
    ]

    if conflicts:
        logger.debug(
            'Provider %s: %s-%s overlaps %d event(s)',
            provider_id,
            start_time.isoformat(),
            end_time.isoformat(),
            len(conflicts),
        )

    return conflicts
