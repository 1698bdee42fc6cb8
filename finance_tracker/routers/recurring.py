# finance_tracker/routers/recurring.py
# Recurring transaction definitions and the scheduled processing endpoint

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
import logging

from .. import models, schemas
from ..dependencies import get_current_user, get_db, rate_limit, verify_cron_secret
from ..recurring import process_recurring_transactions
from ..sanitize import sanitize_transaction_description
from .transactions import check_category

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_recurring(db: Session, recurring_id: str, user_id: str) -> models.RecurringTransaction:
    recurring = models.get_owned(db, models.RecurringTransaction, recurring_id, user_id)
    if not recurring:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recurring transaction not found"
        )
    return recurring


@router.post("/process")
async def process_due_transactions(
    _: None = Depends(verify_cron_secret),
    db: Session = Depends(get_db)
):
    """Run by the daily scheduler. Authorized with the cron secret, not a user token."""
    result = process_recurring_transactions(db)
    return {"success": True, "message": "Recurring transactions processed", **result}


@router.get("/", response_model=List[schemas.RecurringTransaction], dependencies=[Depends(rate_limit("read"))])
async def get_recurring_transactions(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return db.query(models.RecurringTransaction).filter(
        models.RecurringTransaction.user_id == current_user.id
    ).order_by(models.RecurringTransaction.next_process_date).all()


@router.get("/{recurring_id}", response_model=schemas.RecurringTransaction,
            dependencies=[Depends(rate_limit("read"))])
async def get_recurring_transaction(
    recurring_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _get_recurring(db, recurring_id, current_user.id)


@router.post("/", response_model=schemas.RecurringTransaction, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("default"))])
async def create_recurring_transaction(
    data: schemas.RecurringTransactionCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a recurring definition. The first run is due on its start date."""
    recurring = models.RecurringTransaction(
        user_id=current_user.id,
        category_id=check_category(db, current_user.id, data.category_id),
        amount=data.amount,
        description=sanitize_transaction_description(data.description) or None,
        type=data.type.value,
        frequency=data.frequency.value,
        start_date=data.start_date,
        end_date=data.end_date,
        next_process_date=data.start_date,
        is_active=True
    )
    db.add(recurring)
    db.commit()
    db.refresh(recurring)

    logger.info("Created recurring transaction %s for user %s", recurring.id, current_user.id)
    return recurring


@router.put("/{recurring_id}", response_model=schemas.RecurringTransaction,
            dependencies=[Depends(rate_limit("default"))])
async def update_recurring_transaction(
    recurring_id: str,
    data: schemas.RecurringTransactionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    recurring = _get_recurring(db, recurring_id, current_user.id)
    update_data = data.model_dump(exclude_unset=True)

    if "category_id" in update_data:
        update_data["category_id"] = check_category(db, current_user.id, update_data["category_id"])
    if "description" in update_data:
        update_data["description"] = sanitize_transaction_description(update_data["description"]) or None
    for field in ("type", "frequency"):
        if update_data.get(field) is not None:
            update_data[field] = update_data[field].value

    end = update_data["end_date"] if "end_date" in update_data else recurring.end_date
    if end and end < recurring.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after or equal to start date"
        )

    for field, value in update_data.items():
        if value is None and field in ("type", "amount", "frequency", "is_active"):
            continue
        setattr(recurring, field, value)

    recurring.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(recurring)
    return recurring


@router.delete("/{recurring_id}", dependencies=[Depends(rate_limit("default"))])
async def delete_recurring_transaction(
    recurring_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a recurring definition. Transactions it already created are kept."""
    recurring = _get_recurring(db, recurring_id, current_user.id)
    db.delete(recurring)
    db.commit()
    return {"message": "Recurring transaction deleted"}
