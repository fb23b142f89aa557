"""Remove stale dates from every default availability rule.

Usage:
    python -m bookings.prune_availability
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from bookings.core.clock import today_for, utc_now
from bookings.database import SessionLocal
from bookings.services.maintenance import remove_old_availability_dates


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        deleted, updated = remove_old_availability_dates(db, today_for(utc_now()))
    except SQLAlchemyError as exc:
        print("Availability cleanup failed:", exc, file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()
    print(f"Deleted {deleted} rules, updated {updated} rules")


if __name__ == "__main__":
    main()
