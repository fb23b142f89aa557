import logging
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookings.core import config
from bookings.models.default_availability import DefaultAvailability

logger = logging.getLogger(__name__)


def remove_old_availability_dates(
    db: Session,
    today: date,
    retention_days: int | None = None,
    batch_size: int | None = None,
) -> tuple[int, int]:
    """Drop selected dates older than the retention window from every rule.

    Rules left without dates are deleted. Runs as one transaction and returns
    ``(deleted_count, updated_count)``.
    """
    retention_days = config.AVAILABILITY_RETENTION_DAYS if retention_days is None else retention_days
    batch_size = batch_size or config.PRUNE_BATCH_SIZE
    cutoff = (today - timedelta(days=retention_days)).isoformat()

    deleted_count = 0
    updated_count = 0
    last_id = 0

    try:
        while True:
            rules = db.query(DefaultAvailability).filter(
                DefaultAvailability.id > last_id,
            ).order_by(DefaultAvailability.id.asc()).limit(batch_size).all()

            if not rules:
                break

            last_id = rules[-1].id

            for rule in rules:
                current_dates = list(rule.selected_dates or [])
                kept_dates = [selected for selected in current_dates if selected >= cutoff]

                if not kept_dates:
                    db.delete(rule)
                    deleted_count += 1
                elif len(kept_dates) != len(current_dates):
                    rule.selected_dates = kept_dates
                    updated_count += 1

            db.flush()
            logger.info('Processed batch: Deleted %s, Updated %s', deleted_count, updated_count)

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Error during availability cleanup')
        raise

    logger.info('Cleanup complete: Deleted %s records, Updated %s', deleted_count, updated_count)
    return deleted_count, updated_count
