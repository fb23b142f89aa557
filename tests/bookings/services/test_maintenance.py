import os
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from bookings.database import Base  # noqa: E402
from bookings.models.default_availability import DefaultAvailability  # noqa: E402
from bookings.models.user import User  # noqa: E402,F401
from bookings.services.maintenance import remove_old_availability_dates  # noqa: E402


@pytest.fixture
def maintenance_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def _rule(db, dates) -> DefaultAvailability:
    rule = DefaultAvailability(provider_id=1, selected_dates=dates, start_time='09:00:00', end_time='17:00:00')
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


@pytest.mark.parametrize('batch_size', [1, 1000])
def test_remove_old_availability_dates_prunes_and_deletes(maintenance_db, batch_size: int) -> None:
    stale = _rule(maintenance_db, ['2025-06-01', '2025-06-02'])
    mixed = _rule(maintenance_db, ['2025-06-10', '2025-06-15'])
    fresh = _rule(maintenance_db, ['2025-06-20'])

    deleted, updated = remove_old_availability_dates(
        maintenance_db, date(2025, 6, 20), retention_days=7, batch_size=batch_size,
    )

    assert (deleted, updated) == (1, 1)
    remaining = {
        rule.id: rule.selected_dates
        for rule in maintenance_db.query(DefaultAvailability).order_by(DefaultAvailability.id).all()
    }
    assert stale.id not in remaining
    assert remaining[mixed.id] == ['2025-06-15']
    assert remaining[fresh.id] == ['2025-06-20']


def test_remove_old_availability_dates_keeps_cutoff_date(maintenance_db) -> None:
    rule = _rule(maintenance_db, ['2025-06-13'])

    assert remove_old_availability_dates(maintenance_db, date(2025, 6, 20), retention_days=7) == (0, 0)
    maintenance_db.refresh(rule)
    assert rule.selected_dates == ['2025-06-13']


def test_remove_old_availability_dates_deletes_rules_without_dates(maintenance_db) -> None:
    _rule(maintenance_db, [])

    assert remove_old_availability_dates(maintenance_db, date(2025, 6, 20)) == (1, 0)
    assert maintenance_db.query(DefaultAvailability).count() == 0


def test_remove_old_availability_dates_rolls_back_and_reraises() -> None:
    engine = create_engine('sqlite:///:memory:')
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        # No tables exist, so the first query fails.
        with pytest.raises(OperationalError):
            remove_old_availability_dates(db, date(2025, 6, 20))
    finally:
        db.close()
