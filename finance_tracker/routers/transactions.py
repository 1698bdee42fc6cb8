# finance_tracker/routers/transactions.py
# Transaction management and export endpoints

from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, desc
from typing import Optional
from datetime import date, datetime
import logging

from .. import models, schemas
from ..cache import Cache
from ..dependencies import get_current_user, get_db, get_cache, get_pagination_params, rate_limit
from ..export import export_filename, export_to_csv, export_to_pdf
from ..sanitize import sanitize_transaction_description
from ..trash import move_to_trash

logger = logging.getLogger(__name__)

router = APIRouter()


def check_category(db: Session, user_id: str, category_id) -> Optional[str]:
    """Validate that a category id belongs to the user. Returns it as a string."""
    if category_id is None:
        return None
    category_id = str(category_id)
    if not models.get_owned(db, models.Category, category_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid category"
        )
    return category_id


def _filtered_query(
    db: Session,
    user_id: str,
    type: Optional[schemas.TransactionTypeEnum],
    category_id: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
    search: Optional[str]
):
    query = db.query(models.Transaction).options(
        joinedload(models.Transaction.category)
    ).filter(models.Transaction.user_id == user_id)

    if type:
        query = query.filter(models.Transaction.type == type.value)
    if category_id:
        query = query.filter(models.Transaction.category_id == category_id)
    if start_date:
        query = query.filter(models.Transaction.date >= start_date)
    if end_date:
        query = query.filter(models.Transaction.date <= end_date)
    if search:
        search_term = f"%{search.lower()}%"
        query = query.filter(func.lower(models.Transaction.description).like(search_term))

    return query.order_by(desc(models.Transaction.date), desc(models.Transaction.created_at))


def _get_transaction(db: Session, transaction_id: str, user_id: str) -> models.Transaction:
    transaction = models.get_owned(db, models.Transaction, transaction_id, user_id)
    if not transaction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found"
        )
    return transaction

# ===== TRANSACTION CRUD =====

@router.get("/", dependencies=[Depends(rate_limit("read"))])
async def get_transactions(
    type: Optional[schemas.TransactionTypeEnum] = Query(None, description="income or expense"),
    category_id: Optional[str] = Query(None, description="Filter by category"),
    start_date: Optional[date] = Query(None, description="Filter transactions from this date"),
    end_date: Optional[date] = Query(None, description="Filter transactions to this date"),
    search: Optional[str] = Query(None, description="Search in description"),
    pagination: dict = Depends(get_pagination_params),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get transactions with filtering and pagination, newest first."""
    query = _filtered_query(db, current_user.id, type, category_id, start_date, end_date, search)

    total_count = query.count()
    transactions = query.offset(pagination["offset"]).limit(pagination["limit"]).all()

    return {
        "total": total_count,
        "offset": pagination["offset"],
        "limit": pagination["limit"],
        "transactions": [schemas.Transaction.model_validate(t) for t in transactions]
    }


@router.get("/export/", dependencies=[Depends(rate_limit("read"))])
async def export_transactions(
    format: str = Query("csv", pattern="^(csv|pdf)$", description="csv or pdf"),
    type: Optional[schemas.TransactionTypeEnum] = Query(None),
    category_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    filters: Optional[str] = Query(None, max_length=50, description="Label appended to the filename"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Download the matching transactions as CSV or PDF."""
    transactions = _filtered_query(
        db, current_user.id, type, category_id, start_date, end_date, search
    ).all()

    if not transactions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No transactions to export"
        )

    filename = export_filename(format, filters)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if format == "csv":
        return Response(export_to_csv(transactions), media_type="text/csv; charset=utf-8", headers=headers)
    return Response(export_to_pdf(transactions), media_type="application/pdf", headers=headers)


@router.get("/{transaction_id}", response_model=schemas.Transaction, dependencies=[Depends(rate_limit("read"))])
async def get_transaction(
    transaction_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a specific transaction by ID."""
    return _get_transaction(db, transaction_id, current_user.id)


@router.post("/", response_model=schemas.Transaction, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("default"))])
async def create_transaction(
    transaction_data: schemas.TransactionCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Create a new transaction."""
    category_id = check_category(db, current_user.id, transaction_data.category_id)

    transaction = models.Transaction(
        user_id=current_user.id,
        category_id=category_id,
        amount=transaction_data.amount,
        description=sanitize_transaction_description(transaction_data.description) or None,
        type=transaction_data.type.value,
        date=transaction_data.date
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    cache.invalidate_user(current_user.id)
    logger.info("Created transaction %s for user %s", transaction.id, current_user.id)
    return transaction


@router.put("/{transaction_id}", response_model=schemas.Transaction,
            dependencies=[Depends(rate_limit("default"))])
async def update_transaction(
    transaction_id: str,
    transaction_data: schemas.TransactionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Update an existing transaction. Only the fields sent are changed."""
    transaction = _get_transaction(db, transaction_id, current_user.id)
    update_data = transaction_data.model_dump(exclude_unset=True)

    if "category_id" in update_data:
        update_data["category_id"] = check_category(db, current_user.id, update_data["category_id"])
    if "description" in update_data:
        update_data["description"] = sanitize_transaction_description(update_data["description"]) or None
    if update_data.get("type") is not None:
        update_data["type"] = update_data["type"].value

    for field, value in update_data.items():
        if value is None and field in ("type", "amount", "date"):
            continue
        setattr(transaction, field, value)

    transaction.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(transaction)

    cache.invalidate_user(current_user.id)
    return transaction


@router.delete("/{transaction_id}", dependencies=[Depends(rate_limit("default"))])
async def delete_transaction(
    transaction_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Move a transaction to the trash."""
    transaction = _get_transaction(db, transaction_id, current_user.id)
    item = move_to_trash(db, current_user.id, "transactions", transaction)

    cache.invalidate_user(current_user.id)
    return {"message": "Transaction moved to trash", "deleted_item_id": item.id}
