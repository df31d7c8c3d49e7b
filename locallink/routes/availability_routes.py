from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from locallink.auth.dependencies import ensure_calendar_owner, get_current_user
from locallink.models.user import User
from locallink.routes.common import ensure_database_ready, get_db, to_http_exception
from locallink.scheduling.availability import RecurrencePattern, WeeklySchedule, expand_recurrence
from locallink.scheduling.errors import SchedulingError
from locallink.scheduling.timeslots import AvailabilitySlot, NextSlot
from locallink.services import availability_service

router = APIRouter(tags=['availability'])

MAX_RANGE_DAYS = 92
MAX_REASON_LENGTH = 300


class CreateExceptionRequest(BaseModel):
    date: date
    is_available: bool = False
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.')

        return normalized


class ExceptionResponse(BaseModel):
    id: int
    provider_id: str
    date: date
    is_available: bool
    reason: str | None = None

    class Config:
        from_attributes = True


class RecurringPreviewRequest(BaseModel):
    start_date: date
    end_date: date
    pattern: RecurrencePattern

    @model_validator(mode='after')
    def validate_range(self) -> 'RecurringPreviewRequest':
        validate_date_range(self.start_date, self.end_date)
        return self


def validate_date_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValueError('End date must not be before start date.')
    if (end_date - start_date).days > MAX_RANGE_DAYS:
        raise ValueError(f'Date ranges are limited to {MAX_RANGE_DAYS} days.')


def _check_range(start_date: date, end_date: date) -> None:
    try:
        validate_date_range(start_date, end_date)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post('/recurring', response_model=list[AvailabilitySlot])
def preview_recurring_availability(data: RecurringPreviewRequest):
    return expand_recurrence(data.start_date, data.end_date, data.pattern)


@router.get('/{provider_id}', response_model=list[AvailabilitySlot])
def get_provider_availability(
    provider_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)
    ensure_database_ready()

    try:
        return availability_service.fetch_provider_availability(db, provider_id, start_date, end_date)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/next', response_model=NextSlot | None)
def get_next_available_slot(
    provider_id: str,
    duration_minutes: int = Query(..., ge=1, le=24 * 60),
    preferred_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.next_available_slot(
            db,
            provider_id,
            duration_minutes,
            preferred_date=preferred_date or datetime.now(),
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/schedule', response_model=WeeklySchedule)
def get_schedule(provider_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return availability_service.load_schedule(db, provider_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.put('/{provider_id}/schedule', response_model=WeeklySchedule)
def replace_schedule(
    provider_id: str,
    data: WeeklySchedule,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_calendar_owner(current_user, provider_id)
    ensure_database_ready()

    try:
        return availability_service.replace_schedule(db, provider_id, data)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/exceptions', response_model=list[ExceptionResponse])
def list_exceptions(
    provider_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)
    ensure_database_ready()

    try:
        return availability_service.list_exceptions(db, provider_id, start_date, end_date)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    '/{provider_id}/exceptions',
    response_model=ExceptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_exception(
    provider_id: str,
    data: CreateExceptionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_calendar_owner(current_user, provider_id)
    ensure_database_ready()

    try:
        return availability_service.add_exception(
            db,
            provider_id,
            data.date,
            data.is_available,
            reason=data.reason,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{provider_id}/exceptions/{exception_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_exception(
    provider_id: str,
    exception_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_calendar_owner(current_user, provider_id)
    ensure_database_ready()

    try:
        removed = availability_service.remove_exception(db, provider_id, exception_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Date exception not found.',
        )
