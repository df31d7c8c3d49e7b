from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from locallink.database import SessionLocal, ensure_calendar_schema
from locallink.scheduling.errors import (
    ConflictDetected,
    DependencyFailure,
    SchedulingError,
)

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_calendar_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_http_exception(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, ConflictDetected):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                'message': 'This time overlaps existing calendar events.',
                'conflicting_event_ids': [event.id for event in exc.conflicts],
            },
        )
    if isinstance(exc, DependencyFailure):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        )
    # InvalidInterval, InvalidDuration, InvalidStatusTransition
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
