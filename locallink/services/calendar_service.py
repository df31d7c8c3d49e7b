"""
Calendar storage operations.

Binds the pure conflict detector to the SQL store and owns every write to
``calendar_events``. Storage errors surface as ``DependencyFailure``.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from threading import Lock

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from locallink.core import config
from locallink.models.calendar_event import CalendarEvent
from locallink.scheduling.booking_status import ensure_transition
from locallink.scheduling.conflicts import find_conflicts
from locallink.scheduling.errors import ConflictDetected, DependencyFailure, InvalidStatusTransition
from locallink.scheduling.events import CANCELLED, EVENT_STATUSES, CalendarEventData
from locallink.scheduling.stats import CalendarStats, month_bounds, summarize_events
from locallink.scheduling.timeslots import ensure_interval, to_naive_utc

logger = logging.getLogger(__name__)

# One lock per provider id seen by this process; never evicted, so it grows with the provider count.
_provider_locks: dict[str, Lock] = {}
_provider_locks_guard = Lock()


@contextmanager
def provider_lock(provider_id: str):
    """Serialize check-then-write sequences for one provider within this process."""
    with _provider_locks_guard:
        lock = _provider_locks.setdefault(provider_id, Lock())
    with lock:
        yield


def _max_event_duration() -> timedelta:
    return timedelta(minutes=config.MAX_EVENT_DURATION_MINUTES)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Calendar write failed')
        raise DependencyFailure('Calendar store unavailable.') from exc


def fetch_calendar_events(
    db: Session,
    provider_id: str,
    start_time: datetime,
    end_time: datetime,
) -> list[CalendarEventData]:
    """Events of ``provider_id`` overlapping the half-open window ``[start_time, end_time)``."""
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)
    try:
        rows = db.query(CalendarEvent).filter(
            CalendarEvent.provider_id == provider_id,
            CalendarEvent.start_time < end_time,
            CalendarEvent.end_time > start_time,
        ).order_by(CalendarEvent.start_time.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Fetching calendar events failed for provider %s', provider_id)
        raise DependencyFailure('Calendar store unavailable.') from exc

    return [CalendarEventData.model_validate(row) for row in rows]


def check_for_conflicts(
    db: Session,
    provider_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_event_id: str | None = None,
    include_cancelled: bool | None = None,
) -> list[CalendarEventData]:
    if include_cancelled is None:
        include_cancelled = config.INCLUDE_CANCELLED_IN_CONFLICTS

    return find_conflicts(
        lambda owner, window_start, window_end: fetch_calendar_events(db, owner, window_start, window_end),
        provider_id,
        start_time,
        end_time,
        exclude_event_id=exclude_event_id,
        include_cancelled=include_cancelled,
        max_event_duration=_max_event_duration(),
    )


def get_event(db: Session, event_id: str) -> CalendarEvent | None:
    try:
        return db.query(CalendarEvent).filter(CalendarEvent.id == event_id).first()
    except SQLAlchemyError as exc:
        logger.exception('Loading calendar event %s failed', event_id)
        raise DependencyFailure('Calendar store unavailable.') from exc


def reserve_event(
    db: Session,
    provider_id: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    **fields,
) -> CalendarEventData:
    """
    Check for conflicts and insert the event as one step.

    Raises ConflictDetected with the overlapping events when the interval is
    taken. The lock only covers this process; concurrent writers in other
    processes still need an exclusion constraint in the database.
    """
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)
    ensure_interval(start_time, end_time)

    with provider_lock(provider_id):
        if fields.get('status') != CANCELLED:
            conflicts = check_for_conflicts(db, provider_id, start_time, end_time)
            if conflicts:
                raise ConflictDetected(conflicts)

        event = CalendarEvent(
            provider_id=provider_id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            **fields,
        )
        db.add(event)
        _commit(db)
        db.refresh(event)

    logger.info('Reserved %s-%s for provider %s (event %s)', start_time, end_time, provider_id, event.id)
    return CalendarEventData.model_validate(event)


def update_event(db: Session, event: CalendarEvent, changes: dict) -> CalendarEventData:
    """Apply ``changes``; a new interval is re-checked against the rest of the calendar."""
    new_status = changes.get('status')
    if new_status is not None:
        # in_progress and completed live on bookings, not on calendar entries
        if new_status not in EVENT_STATUSES:
            raise InvalidStatusTransition(event.status, new_status)
        ensure_transition(event.status, new_status)

    changes = {
        field_name: to_naive_utc(value) if field_name in ('start_time', 'end_time') else value
        for field_name, value in changes.items()
    }
    start_time = changes.get('start_time', event.start_time)
    end_time = changes.get('end_time', event.end_time)
    ensure_interval(start_time, end_time)

    with provider_lock(event.provider_id):
        interval_changed = start_time != event.start_time or end_time != event.end_time
        if interval_changed and (new_status or event.status) != CANCELLED:
            conflicts = check_for_conflicts(
                db,
                event.provider_id,
                start_time,
                end_time,
                exclude_event_id=event.id,
            )
            if conflicts:
                raise ConflictDetected(conflicts)

        for field_name, value in changes.items():
            setattr(event, field_name, value)
        _commit(db)
        db.refresh(event)

    return CalendarEventData.model_validate(event)


def delete_event(db: Session, event: CalendarEvent) -> None:
    db.delete(event)
    _commit(db)
    logger.info('Deleted calendar event %s', event.id)


def get_calendar_stats(
    db: Session,
    provider_id: str,
    month_day: date,
    now: datetime | None = None,
) -> CalendarStats:
    month_start, month_end = month_bounds(month_day)
    events = [
        event for event in fetch_calendar_events(db, provider_id, month_start, month_end)
        if month_start <= event.start_time < month_end
    ]
    return summarize_events(events, now=now)
