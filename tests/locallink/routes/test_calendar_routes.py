from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from locallink.models.user import User
from locallink.routes.calendar_routes import (
    CreateEventRequest,
    UpdateEventRequest,
    calendar_stats,
    check_conflicts,
    create_event,
    delete_event,
    get_event,
    list_events,
    update_event,
)
from locallink.scheduling.errors import DependencyFailure

PROVIDER = 'provider-1'


@pytest.fixture(autouse=True)
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('locallink.routes.calendar_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def provider() -> User:
    return User(uid=PROVIDER, email='provider@example.com', role='provider')


def _request(start: datetime, end: datetime, **fields) -> CreateEventRequest:
    return CreateEventRequest(
        provider_id=fields.pop('provider_id', PROVIDER),
        title=fields.pop('title', 'House Cleaning - Sarah Johnson'),
        start_time=start,
        end_time=end,
        **fields,
    )


def _check(db, start: datetime, end: datetime, **fields):
    return check_conflicts(
        provider_id=fields.get('provider_id', PROVIDER),
        start_time=start,
        end_time=end,
        exclude_event_id=fields.get('exclude_event_id'),
        include_cancelled=fields.get('include_cancelled'),
        db=db,
    )


def test_create_event_request_normalizes_text_fields() -> None:
    request = _request(
        datetime(2024, 6, 3, 9, 0),
        datetime(2024, 6, 3, 10, 0),
        title='  Kitchen sink repair ',
        description='   ',
    )

    assert request.title == 'Kitchen sink repair'
    assert request.description is None


@pytest.mark.parametrize(
    'fields',
    [
        {'title': '   '},
        {'event_type': 'holiday'},
        {'status': 'archived'},
    ],
)
def test_create_event_request_rejects_invalid_fields(fields) -> None:
    with pytest.raises(ValidationError):
        _request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), **fields)


def test_create_event_request_rejects_inverted_interval() -> None:
    with pytest.raises(ValidationError):
        _request(datetime(2024, 6, 3, 10, 0), datetime(2024, 6, 3, 9, 0))


def test_create_event_persists_for_owner(db, provider: User) -> None:
    created = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), location='123 Main St'),
        db=db,
        current_user=provider,
    )

    fetched = get_event(event_id=created.id, db=db)
    assert fetched.location == '123 Main St'
    assert fetched.provider_id == PROVIDER


def test_create_event_request_accepts_mixed_offset_bounds() -> None:
    request = _request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc))

    assert request.end_time == datetime(2024, 6, 3, 10, 0)


def test_create_event_stores_offset_times_as_utc(db, provider: User) -> None:
    eastern = timezone(timedelta(hours=-4))

    created = create_event(
        data=_request(
            datetime(2024, 6, 3, 5, 0, tzinfo=eastern),
            datetime(2024, 6, 3, 6, 0, tzinfo=eastern),
        ),
        db=db,
        current_user=provider,
    )

    fetched = get_event(event_id=created.id, db=db)
    assert (fetched.start_time, fetched.end_time) == (datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0))


def test_utc_requests_see_events_stored_without_offset(db, provider: User) -> None:
    existing = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )

    result = _check(
        db,
        datetime(2024, 6, 3, 9, 30, tzinfo=timezone.utc),
        datetime(2024, 6, 3, 9, 45, tzinfo=timezone.utc),
    )
    assert result.has_conflict is True
    assert [event.id for event in result.conflicts] == [existing.id]

    with pytest.raises(HTTPException) as exception_info:
        create_event(
            data=_request(
                datetime(2024, 6, 3, 9, 30, tzinfo=timezone.utc),
                datetime(2024, 6, 3, 9, 45, tzinfo=timezone.utc),
            ),
            db=db,
            current_user=provider,
        )
    assert exception_info.value.status_code == 409

    events = list_events(
        provider_id=PROVIDER,
        start_time=datetime(2024, 6, 3, 0, 0, tzinfo=timezone.utc),
        end_time=datetime(2024, 6, 4, 0, 0),
        db=db,
    )
    assert [event.id for event in events] == [existing.id]


def test_create_event_rejects_other_providers(db) -> None:
    intruder = User(uid='provider-2', email='other@example.com', role='provider')

    with pytest.raises(HTTPException) as exception_info:
        create_event(
            data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
            db=db,
            current_user=intruder,
        )

    assert exception_info.value.status_code == 403


def test_admin_can_create_on_any_calendar(db) -> None:
    admin = User(uid='admin-1', email='admin@example.com', role='admin')

    created = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), event_type='blocked'),
        db=db,
        current_user=admin,
    )

    assert created.event_type == 'blocked'


def test_create_event_returns_conflict_for_overlap(db, provider: User) -> None:
    existing = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )

    with pytest.raises(HTTPException) as exception_info:
        create_event(
            data=_request(datetime(2024, 6, 3, 9, 30), datetime(2024, 6, 3, 11, 0)),
            db=db,
            current_user=provider,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['conflicting_event_ids'] == [existing.id]


def test_check_conflicts_end_to_end(db, provider: User) -> None:
    existing = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )

    inside = _check(db, datetime(2024, 6, 3, 9, 30), datetime(2024, 6, 3, 9, 45))
    adjacent = _check(db, datetime(2024, 6, 3, 10, 0), datetime(2024, 6, 3, 11, 0))
    itself = _check(db, existing.start_time, existing.end_time, exclude_event_id=existing.id)

    assert inside.has_conflict is True
    assert [event.id for event in inside.conflicts] == [existing.id]
    assert adjacent.has_conflict is False
    assert adjacent.conflicts == []
    assert itself.conflicts == []


def test_check_conflicts_include_cancelled_switch(db, provider: User) -> None:
    create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), status='cancelled'),
        db=db,
        current_user=provider,
    )

    assert _check(db, datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)).has_conflict is True
    assert _check(
        db, datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), include_cancelled=False
    ).has_conflict is False


def test_check_conflicts_rejects_inverted_interval(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _check(db, datetime(2024, 6, 3, 10, 0), datetime(2024, 6, 3, 10, 0))

    assert exception_info.value.status_code == 400


def test_check_conflicts_reports_unavailable_store(db, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_fetch(*args, **kwargs):
        raise DependencyFailure('Calendar store unavailable.')

    monkeypatch.setattr('locallink.services.calendar_service.fetch_calendar_events', broken_fetch)

    with pytest.raises(HTTPException) as exception_info:
        _check(db, datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0))

    assert exception_info.value.status_code == 503


def test_list_events_returns_window(db, provider: User) -> None:
    create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )
    create_event(
        data=_request(datetime(2024, 6, 10, 9, 0), datetime(2024, 6, 10, 10, 0)),
        db=db,
        current_user=provider,
    )

    events = list_events(
        provider_id=PROVIDER,
        start_time=datetime(2024, 6, 3, 0, 0),
        end_time=datetime(2024, 6, 4, 0, 0),
        db=db,
    )

    assert [event.start_time for event in events] == [datetime(2024, 6, 3, 9, 0)]


def test_list_events_rejects_inverted_window(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_events(
            provider_id=PROVIDER,
            start_time=datetime(2024, 6, 4, 0, 0),
            end_time=datetime(2024, 6, 3, 0, 0),
            db=db,
        )

    assert exception_info.value.status_code == 400


def test_get_event_returns_not_found(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_event(event_id='missing', db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Calendar event not found.'


def test_update_event_reschedules_and_renames(db, provider: User) -> None:
    created = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )

    updated = update_event(
        event_id=created.id,
        data=UpdateEventRequest(
            title='Deep clean',
            start_time=datetime(2024, 6, 3, 9, 30),
            end_time=datetime(2024, 6, 3, 11, 0),
        ),
        db=db,
        current_user=provider,
    )

    assert updated.title == 'Deep clean'
    assert updated.end_time == datetime(2024, 6, 3, 11, 0)


def test_update_event_rejects_invalid_status_change(db, provider: User) -> None:
    created = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0), status='cancelled'),
        db=db,
        current_user=provider,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_event(
            event_id=created.id,
            data=UpdateEventRequest(status='confirmed'),
            db=db,
            current_user=provider,
        )

    assert exception_info.value.status_code == 400


def test_delete_event_requires_owner(db, provider: User) -> None:
    created = create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )
    intruder = User(uid='provider-2', email='other@example.com', role='provider')

    with pytest.raises(HTTPException) as exception_info:
        delete_event(event_id=created.id, db=db, current_user=intruder)
    assert exception_info.value.status_code == 403

    delete_event(event_id=created.id, db=db, current_user=provider)

    with pytest.raises(HTTPException) as exception_info:
        get_event(event_id=created.id, db=db)
    assert exception_info.value.status_code == 404


def test_calendar_stats_for_month(db, provider: User) -> None:
    create_event(
        data=_request(datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 10, 0)),
        db=db,
        current_user=provider,
    )
    create_event(
        data=_request(datetime(2024, 6, 4, 9, 0), datetime(2024, 6, 4, 10, 0), event_type='blocked'),
        db=db,
        current_user=provider,
    )

    stats = calendar_stats(provider_id=PROVIDER, month=date(2024, 6, 1), db=db)

    assert stats.total_events == 2
    assert stats.bookings == 1
    assert stats.blocked_time == 1
    assert stats.busy_days == 2
