import os
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from bookings.database import Base  # noqa: E402
from bookings.models.availability_override import AvailabilityOverride  # noqa: E402
from bookings.models.blocked_date import BlockedDate  # noqa: E402
from bookings.models.user import User  # noqa: E402,F401
from bookings.routes.blocked_date_routes import (  # noqa: E402
    BlockedDateRequest,
    create_blocked_date,
    delete_blocked_date,
    list_blocked_dates,
    update_blocked_date,
)
from bookings.routes.override_routes import (  # noqa: E402
    CreateOverrideRequest,
    UpdateOverrideRequest,
    create_override,
    delete_override,
    list_overrides,
    update_override,
)

NOW = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
PROVIDER = SimpleNamespace(id=1)


@pytest.fixture
def schedule_db(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('bookings.routes.override_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('bookings.routes.blocked_date_routes.ensure_database_ready', lambda: None)

    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.mark.parametrize(
    ('override_date', 'error_detail'),
    [
        (None, 'Override date is required'),
        ('10/06/2025', 'Invalid date format (use YYYY-MM-DD)'),
        ('2025-05-31', 'Cannot override dates in the past'),
    ],
)
def test_create_override_rejects_invalid_dates(override_date, error_detail: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_override(
            data=CreateOverrideRequest(override_date=override_date),
            db=None,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == error_detail


def test_create_override_stores_opening_window(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(
            override_date='2025-06-14', start_time='12:00:00', end_time='14:00:00', is_available=True,
        ),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    assert override.override_date == date(2025, 6, 14)
    assert override.is_available is True
    assert (override.start_time, override.end_time) == ('12:00:00', '14:00:00')


def test_create_override_defaults_to_closed(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    assert override.is_available is False
    assert override.start_time is None


def test_create_override_rejects_second_override_for_same_date(schedule_db) -> None:
    create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    with pytest.raises(HTTPException) as exception_info:
        create_override(
            data=CreateOverrideRequest(override_date='2025-06-14', is_available=True),
            db=schedule_db,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Override for this date already exists'


def test_list_overrides_orders_by_date(schedule_db) -> None:
    for override_date in ('2025-06-20', '2025-06-05', '2025-06-12'):
        create_override(
            data=CreateOverrideRequest(override_date=override_date), db=schedule_db, current_user=PROVIDER, now=NOW,
        )

    overrides = list_overrides(db=schedule_db, current_user=PROVIDER)

    assert [override.override_date for override in overrides] == [
        date(2025, 6, 5), date(2025, 6, 12), date(2025, 6, 20),
    ]


def test_update_override_changes_only_given_fields(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(override_date='2025-06-14', start_time='12:00:00', end_time='14:00:00'),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    updated = update_override(
        override_id=override.id,
        data=UpdateOverrideRequest(is_available=True, end_time='15:00:00'),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    assert updated.is_available is True
    assert (updated.start_time, updated.end_time) == ('12:00:00', '15:00:00')
    assert updated.override_date == date(2025, 6, 14)


def test_update_override_returns_not_found_for_other_provider(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_override(
            override_id=override.id,
            data=UpdateOverrideRequest(is_available=True),
            db=schedule_db,
            current_user=SimpleNamespace(id=2),
            now=NOW,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Availability override not found'


def test_delete_override_removes_row(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    delete_override(override_id=override.id, db=schedule_db, current_user=PROVIDER)

    assert schedule_db.query(AvailabilityOverride).count() == 0


@pytest.mark.parametrize(
    ('blocked_date', 'error_detail'),
    [
        (None, 'Blocked date is required'),
        ('2025-6-1', 'Invalid date format (use YYYY-MM-DD)'),
        ('2025-05-31', 'Cannot block dates in the past'),
    ],
)
def test_create_blocked_date_rejects_invalid_dates(blocked_date, error_detail: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_blocked_date(
            data=BlockedDateRequest(blocked_date=blocked_date),
            db=None,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == error_detail


def test_create_blocked_date_stores_reason(schedule_db) -> None:
    blocked = create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-01', reason='Holiday'),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    assert blocked.blocked_date == date(2025, 6, 1)
    assert blocked.reason == 'Holiday'


def test_create_blocked_date_rejects_duplicate(schedule_db) -> None:
    create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-10'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    with pytest.raises(HTTPException) as exception_info:
        create_blocked_date(
            data=BlockedDateRequest(blocked_date='2025-06-10', reason='Again'),
            db=schedule_db,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This date is already blocked'


def test_update_blocked_date_rejects_past_date() -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_blocked_date(
            blocked_id=1,
            data=BlockedDateRequest(blocked_date='2025-05-01'),
            db=None,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Cannot reschedule to past date'


def test_update_blocked_date_moves_date_and_keeps_reason(schedule_db) -> None:
    blocked = create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-10', reason='Holiday'),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    updated = update_blocked_date(
        blocked_id=blocked.id,
        data=BlockedDateRequest(blocked_date='2025-06-11'),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    assert updated.blocked_date == date(2025, 6, 11)
    assert updated.reason == 'Holiday'


def test_list_and_delete_blocked_dates(schedule_db) -> None:
    first = create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-20'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )
    create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-10'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    assert [blocked.blocked_date for blocked in list_blocked_dates(db=schedule_db, current_user=PROVIDER)] == [
        date(2025, 6, 10), date(2025, 6, 20),
    ]

    delete_blocked_date(blocked_id=first.id, db=schedule_db, current_user=PROVIDER)

    assert schedule_db.query(BlockedDate).count() == 1


def test_delete_blocked_date_returns_not_found(schedule_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_blocked_date(blocked_id=999, db=schedule_db, current_user=PROVIDER)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Blocked date not found'


def test_update_override_rejects_moving_onto_taken_date(schedule_db) -> None:
    create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )
    other = create_override(
        data=CreateOverrideRequest(override_date='2025-06-15'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_override(
            override_id=other.id,
            data=UpdateOverrideRequest(override_date='2025-06-14'),
            db=schedule_db,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Override for this date already exists'


def test_update_override_may_keep_its_own_date(schedule_db) -> None:
    override = create_override(
        data=CreateOverrideRequest(override_date='2025-06-14'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    updated = update_override(
        override_id=override.id,
        data=UpdateOverrideRequest(override_date='2025-06-14', is_available=True),
        db=schedule_db,
        current_user=PROVIDER,
        now=NOW,
    )

    assert updated.is_available is True


def test_update_blocked_date_rejects_moving_onto_blocked_date(schedule_db) -> None:
    create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-10'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )
    other = create_blocked_date(
        data=BlockedDateRequest(blocked_date='2025-06-11'), db=schedule_db, current_user=PROVIDER, now=NOW,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_blocked_date(
            blocked_id=other.id,
            data=BlockedDateRequest(blocked_date='2025-06-10'),
            db=schedule_db,
            current_user=PROVIDER,
            now=NOW,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This date is already blocked'
