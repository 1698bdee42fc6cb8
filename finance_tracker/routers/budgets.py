# finance_tracker/routers/budgets.py
# Budget management endpoints, each budget returned with its current spending

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
import logging

from .. import models, schemas
from ..cache import Cache
from ..dependencies import get_current_user, get_db, get_cache, rate_limit
from ..reports import budget_spending
from ..sanitize import sanitize_budget_notes
from ..trash import move_to_trash
from .transactions import check_category

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_budget(db: Session, budget_id: str, user_id: str) -> models.Budget:
    budget = models.get_owned(db, models.Budget, budget_id, user_id)
    if not budget:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Budget not found"
        )
    return budget


def _with_spending(db: Session, budgets: List[models.Budget], user_id: str) -> List[schemas.BudgetWithSpending]:
    category_ids = {b.category_id for b in budgets if b.category_id}
    expenses = []
    if category_ids:
        expenses = db.query(models.Transaction).filter(
            models.Transaction.user_id == user_id,
            models.Transaction.type == "expense",
            models.Transaction.category_id.in_(category_ids)
        ).all()

    result = []
    for budget in budgets:
        row = schemas.BudgetWithSpending.model_validate(budget)
        for field, value in budget_spending(budget, expenses).items():
            setattr(row, field, value)
        result.append(row)
    return result


def _check_open_ended_duplicate(db: Session, user_id: str, category_id: str, period: str,
                                exclude_id: Optional[str] = None):
    query = db.query(models.Budget).filter(
        models.Budget.user_id == user_id,
        models.Budget.category_id == category_id,
        models.Budget.period == period,
        models.Budget.end_date.is_(None)
    )
    if exclude_id:
        query = query.filter(models.Budget.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An active budget already exists for this category and period"
        )

# ===== BUDGET CRUD =====

@router.get("/", response_model=List[schemas.BudgetWithSpending], dependencies=[Depends(rate_limit("read"))])
async def get_budgets(
    category_id: Optional[str] = Query(None, description="Filter by category"),
    period: Optional[schemas.BudgetPeriodEnum] = Query(None, description="weekly, monthly or yearly"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List budgets with spent, remaining and percentage for the current period."""
    query = db.query(models.Budget).options(
        joinedload(models.Budget.category)
    ).filter(models.Budget.user_id == current_user.id)
    if category_id:
        query = query.filter(models.Budget.category_id == category_id)
    if period:
        query = query.filter(models.Budget.period == period.value)

    budgets = query.order_by(models.Budget.created_at.desc()).all()
    return _with_spending(db, budgets, current_user.id)


@router.get("/{budget_id}", response_model=schemas.BudgetWithSpending, dependencies=[Depends(rate_limit("read"))])
async def get_budget(
    budget_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    budget = _get_budget(db, budget_id, current_user.id)
    return _with_spending(db, [budget], current_user.id)[0]


@router.post("/", response_model=schemas.BudgetWithSpending, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("default"))])
async def create_budget(
    budget_data: schemas.BudgetCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Create a budget for one of the user's categories."""
    category_id = check_category(db, current_user.id, budget_data.category_id)
    if budget_data.end_date is None:
        _check_open_ended_duplicate(db, current_user.id, category_id, budget_data.period.value)

    budget = models.Budget(
        user_id=current_user.id,
        category_id=category_id,
        amount=budget_data.amount,
        period=budget_data.period.value,
        start_date=budget_data.start_date,
        end_date=budget_data.end_date,
        notes=sanitize_budget_notes(budget_data.notes) or None
    )
    db.add(budget)
    db.commit()
    db.refresh(budget)

    cache.invalidate_user(current_user.id)
    logger.info("Created budget %s for user %s", budget.id, current_user.id)
    return _with_spending(db, [budget], current_user.id)[0]


@router.put("/{budget_id}", response_model=schemas.BudgetWithSpending, dependencies=[Depends(rate_limit("default"))])
async def update_budget(
    budget_id: str,
    budget_data: schemas.BudgetUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    budget = _get_budget(db, budget_id, current_user.id)
    update_data = budget_data.model_dump(exclude_unset=True)

    if update_data.get("category_id") is not None:
        update_data["category_id"] = check_category(db, current_user.id, update_data["category_id"])
    if update_data.get("period") is not None:
        update_data["period"] = update_data["period"].value
    if "notes" in update_data:
        update_data["notes"] = sanitize_budget_notes(update_data["notes"]) or None

    start = update_data.get("start_date") or budget.start_date
    end = update_data["end_date"] if "end_date" in update_data else budget.end_date
    if start and end and end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after or equal to start date"
        )

    for field, value in update_data.items():
        if value is None and field in ("category_id", "amount", "period", "start_date"):
            continue
        setattr(budget, field, value)

    if budget.end_date is None:
        _check_open_ended_duplicate(db, current_user.id, budget.category_id, budget.period, exclude_id=budget.id)

    db.commit()
    db.refresh(budget)

    cache.invalidate_user(current_user.id)
    return _with_spending(db, [budget], current_user.id)[0]


@router.delete("/{budget_id}", dependencies=[Depends(rate_limit("default"))])
async def delete_budget(
    budget_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Move a budget to the trash."""
    budget = _get_budget(db, budget_id, current_user.id)
    item = move_to_trash(db, current_user.id, "budgets", budget)

    cache.invalidate_user(current_user.id)
    return {"message": "Budget moved to trash", "deleted_item_id": item.id}
