"""
Provider availability storage.

Loads a provider's weekly schedule and date exceptions, and feeds them with
the provider's calendar to the deterministic generator.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from locallink.core import config
from locallink.models.availability import AvailabilityException, AvailabilityRule, ProviderSchedule
from locallink.scheduling.availability import (
    ScheduleException,
    WeeklySchedule,
    default_weekly_schedule,
    generate_availability,
)
from locallink.scheduling.errors import DependencyFailure
from locallink.scheduling.slots import find_next_available_slot
from locallink.scheduling.timeslots import AvailabilitySlot, NextSlot, TimeWindow
from locallink.services.calendar_service import fetch_calendar_events

logger = logging.getLogger(__name__)


def _format_weekdays(weekdays) -> str:
    return ','.join(str(weekday) for weekday in sorted(weekdays))


def _parse_weekdays(value: str | None) -> frozenset[int]:
    if not value:
        return frozenset()
    return frozenset(int(item) for item in value.split(',') if item.strip())


def load_schedule(db: Session, provider_id: str) -> WeeklySchedule:
    """The provider's stored schedule, or the configured default when none is stored."""
    try:
        settings = db.query(ProviderSchedule).filter(ProviderSchedule.provider_id == provider_id).first()
        if settings is None:
            return default_weekly_schedule(config.DEFAULT_CLOSED_WEEKDAYS, config.DEFAULT_SLOT_MINUTES)

        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.provider_id == provider_id,
        ).order_by(AvailabilityRule.weekday.asc(), AvailabilityRule.start_time.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Loading schedule failed for provider %s', provider_id)
        raise DependencyFailure('Schedule store unavailable.') from exc

    windows: dict[int, list[TimeWindow]] = {}
    for rule in rules:
        windows.setdefault(rule.weekday, []).append(
            TimeWindow(start_time=rule.start_time, end_time=rule.end_time)
        )

    return WeeklySchedule(
        windows=windows,
        closed_weekdays=_parse_weekdays(settings.closed_weekdays),
        slot_minutes=settings.slot_minutes,
    )


def replace_schedule(db: Session, provider_id: str, schedule: WeeklySchedule) -> WeeklySchedule:
    try:
        settings = db.query(ProviderSchedule).filter(ProviderSchedule.provider_id == provider_id).first()
        if settings is None:
            settings = ProviderSchedule(provider_id=provider_id)
            db.add(settings)
        settings.closed_weekdays = _format_weekdays(schedule.closed_weekdays)
        settings.slot_minutes = schedule.slot_minutes

        db.query(AvailabilityRule).filter(AvailabilityRule.provider_id == provider_id).delete()
        for weekday, windows in schedule.windows.items():
            for window in windows:
                db.add(
                    AvailabilityRule(
                        provider_id=provider_id,
                        weekday=weekday,
                        start_time=window.start_time,
                        end_time=window.end_time,
                    )
                )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Saving schedule failed for provider %s', provider_id)
        raise DependencyFailure('Schedule store unavailable.') from exc

    logger.info('Replaced weekly schedule for provider %s', provider_id)
    return load_schedule(db, provider_id)


def list_exceptions(
    db: Session,
    provider_id: str,
    start_date: date,
    end_date: date,
) -> list[AvailabilityException]:
    try:
        return db.query(AvailabilityException).filter(
            AvailabilityException.provider_id == provider_id,
            AvailabilityException.date >= start_date,
            AvailabilityException.date <= end_date,
        ).order_by(AvailabilityException.date.asc(), AvailabilityException.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Loading date exceptions failed for provider %s', provider_id)
        raise DependencyFailure('Schedule store unavailable.') from exc


def add_exception(
    db: Session,
    provider_id: str,
    exception_date: date,
    is_available: bool,
    reason: str | None = None,
) -> AvailabilityException:
    """Store an override for ``exception_date``, replacing any earlier one for that date."""
    try:
        db.query(AvailabilityException).filter(
            AvailabilityException.provider_id == provider_id,
            AvailabilityException.date == exception_date,
        ).delete()
        exception = AvailabilityException(
            provider_id=provider_id,
            date=exception_date,
            is_available=is_available,
            reason=reason,
        )
        db.add(exception)
        db.commit()
        db.refresh(exception)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Saving date exception failed for provider %s', provider_id)
        raise DependencyFailure('Schedule store unavailable.') from exc

    return exception


def remove_exception(db: Session, provider_id: str, exception_id: int) -> bool:
    try:
        deleted = db.query(AvailabilityException).filter(
            AvailabilityException.id == exception_id,
            AvailabilityException.provider_id == provider_id,
        ).delete()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Removing date exception failed for provider %s', provider_id)
        raise DependencyFailure('Schedule store unavailable.') from exc

    return bool(deleted)


def fetch_provider_availability(
    db: Session,
    provider_id: str,
    start_date: date,
    end_date: date,
    include_cancelled: bool | None = None,
) -> list[AvailabilitySlot]:
    if include_cancelled is None:
        include_cancelled = config.INCLUDE_CANCELLED_IN_CONFLICTS

    if end_date < start_date:
        return []

    schedule = load_schedule(db, provider_id)
    exceptions = [
        ScheduleException.model_validate(row)
        for row in list_exceptions(db, provider_id, start_date, end_date)
    ]
    range_start = datetime.combine(start_date, datetime.min.time())
    range_end = datetime.combine(end_date + timedelta(days=1), datetime.min.time())
    events = fetch_calendar_events(db, provider_id, range_start, range_end)

    return generate_availability(
        schedule,
        start_date,
        end_date,
        events=events,
        exceptions=exceptions,
        include_cancelled=include_cancelled,
    )


def next_available_slot(
    db: Session,
    provider_id: str,
    duration_minutes: int,
    preferred_date: date | datetime | None = None,
) -> NextSlot | None:
    return find_next_available_slot(
        lambda owner, start_date, end_date: fetch_provider_availability(db, owner, start_date, end_date),
        provider_id,
        duration_minutes,
        preferred_date=preferred_date,
        horizon_days=config.NEXT_SLOT_HORIZON_DAYS,
    )
