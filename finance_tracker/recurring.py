# finance_tracker/recurring.py
# Turns due recurring definitions into real transactions

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def calculate_next_process_date(current: date, frequency: str) -> date:
    """Next run date. Monthly and yearly steps clamp to the last day of a shorter month."""
    if frequency == "daily":
        return current + timedelta(days=1)
    if frequency == "weekly":
        return current + timedelta(days=7)
    if frequency == "monthly":
        return current + relativedelta(months=1)
    if frequency == "yearly":
        return current + relativedelta(years=1)
    raise ValueError(f"Unknown frequency: {frequency}")


def should_deactivate(end_date: Optional[date], next_date: date) -> bool:
    return end_date is not None and next_date > end_date


def process_recurring_transactions(db: Session, today: Optional[date] = None) -> Dict:
    """
    Create today's transaction for every active definition that is due.

    Each definition is committed on its own, so one failure is recorded in
    `error_details` and the rest still go through.
    """
    today = today or date.today()
    due = (
        db.query(models.RecurringTransaction)
        .filter(
            models.RecurringTransaction.is_active.is_(True),
            models.RecurringTransaction.next_process_date <= today,
        )
        .all()
    )
    logger.info("Processing %s recurring transactions for %s", len(due), today)

    processed = 0
    errors = []
    for rt in due:
        rt_id = rt.id
        try:
            next_date = calculate_next_process_date(today, rt.frequency)
            db.add(models.Transaction(
                user_id=rt.user_id,
                category_id=rt.category_id,
                amount=rt.amount,
                description=rt.description,
                type=rt.type,
                date=today,
            ))
            stop = should_deactivate(rt.end_date, next_date)
            rt.last_processed_date = today
            rt.next_process_date = next_date
            rt.is_active = not stop
            rt.updated_at = datetime.utcnow()
            db.commit()
        except (SQLAlchemyError, ValueError) as e:
            db.rollback()
            logger.error("Error processing recurring transaction %s: %s", rt_id, e)
            errors.append({"id": rt_id, "error": str(e)})
            continue

        processed += 1
        if stop:
            logger.info("Deactivated recurring transaction %s (reached end date)", rt_id)

    logger.info("Recurring processing complete. Processed: %s, Errors: %s", processed, len(errors))
    return {
        "processed": processed,
        "errors": len(errors),
        "error_details": errors,
    }
