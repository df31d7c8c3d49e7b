from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from locallink.auth.dependencies import ensure_calendar_owner, get_current_user
from locallink.models.user import User
from locallink.routes.common import ensure_database_ready, get_db, to_http_exception
from locallink.scheduling.errors import SchedulingError
from locallink.scheduling.events import CalendarEventData, EventStatus, EventType
from locallink.scheduling.stats import CalendarStats
from locallink.scheduling.timeslots import to_naive_utc
from locallink.services import calendar_service

router = APIRouter(tags=['calendar'])

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000


def _normalize_title(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Title is required.')
    if len(normalized) > MAX_TITLE_LENGTH:
        raise ValueError(f'Title must be {MAX_TITLE_LENGTH} characters or fewer.')
    return normalized


def _normalize_description(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
    return normalized


class CreateEventRequest(BaseModel):
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

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_timezone(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode='after')
    def validate_interval(self) -> 'CreateEventRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class UpdateEventRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    event_type: EventType | None = None
    status: EventStatus | None = None
    location: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return None if value is None else _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_timezone(cls, value: datetime | None) -> datetime | None:
        return None if value is None else to_naive_utc(value)


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: list[CalendarEventData]


def _load_event(db: Session, event_id: str):
    event = calendar_service.get_event(db, event_id)
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Calendar event not found.',
        )
    return event


@router.get('/events', response_model=list[CalendarEventData])
def list_events(
    provider_id: str = Query(...),
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    db: Session = Depends(get_db),
):
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)
    if end_time <= start_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='End time must be after start time.',
        )

    ensure_database_ready()

    try:
        return calendar_service.fetch_calendar_events(db, provider_id, start_time, end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/events', response_model=CalendarEventData, status_code=status.HTTP_201_CREATED)
def create_event(
    data: CreateEventRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_calendar_owner(current_user, data.provider_id)
    ensure_database_ready()

    fields = data.model_dump(exclude={'provider_id', 'title', 'start_time', 'end_time'})
    try:
        return calendar_service.reserve_event(
            db,
            data.provider_id,
            data.title,
            data.start_time,
            data.end_time,
            **fields,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/events/{event_id}', response_model=CalendarEventData)
def get_event(event_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        event = _load_event(db, event_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return CalendarEventData.model_validate(event)


@router.patch('/events/{event_id}', response_model=CalendarEventData)
def update_event(
    event_id: str,
    data: UpdateEventRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        event = _load_event(db, event_id)
        ensure_calendar_owner(current_user, event.provider_id)
        return calendar_service.update_event(db, event, data.model_dump(exclude_unset=True, exclude_none=True))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/events/{event_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        event = _load_event(db, event_id)
        ensure_calendar_owner(current_user, event.provider_id)
        calendar_service.delete_event(db, event)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/conflicts', response_model=ConflictCheckResponse)
def check_conflicts(
    provider_id: str = Query(...),
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    exclude_event_id: str | None = Query(default=None),
    include_cancelled: bool | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conflicts = calendar_service.check_for_conflicts(
            db,
            provider_id,
            start_time,
            end_time,
            exclude_event_id=exclude_event_id,
            include_cancelled=include_cancelled,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return ConflictCheckResponse(has_conflict=bool(conflicts), conflicts=conflicts)


@router.get('/stats', response_model=CalendarStats)
def calendar_stats(
    provider_id: str = Query(...),
    month: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return calendar_service.get_calendar_stats(db, provider_id, month or date.today())
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
