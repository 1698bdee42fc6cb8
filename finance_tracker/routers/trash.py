# finance_tracker/routers/trash.py
# Trash bin endpoints: list, inspect, restore and purge deleted items

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from .. import models, schemas, trash
from ..cache import Cache
from ..dependencies import get_current_user, get_db, get_cache, rate_limit

router = APIRouter()


TABLE_LABELS = {"transactions": "Transaction", "categories": "Category", "budgets": "Budget"}


def _label(table_name: str) -> str:
    return TABLE_LABELS.get(table_name, "Item")


@router.get("/", dependencies=[Depends(rate_limit("read"))])
async def get_deleted_items(
    table: Optional[schemas.TrashTableEnum] = Query(None, description="transactions, categories or budgets"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Deleted items, newest first, also grouped by table."""
    result = trash.list_trash(db, current_user.id, table.value if table else None)
    return {
        "deleted_items": [schemas.DeletedItem.model_validate(i) for i in result["deleted_items"]],
        "grouped": {
            name: [schemas.DeletedItem.model_validate(i) for i in items]
            for name, items in result["grouped"].items()
        },
        "total": result["total"]
    }


@router.get("/{item_id}", response_model=schemas.DeletedItem, dependencies=[Depends(rate_limit("read"))])
async def get_deleted_item(
    item_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return trash.get_trash_item(db, current_user.id, item_id)


@router.put("/{item_id}", dependencies=[Depends(rate_limit("default"))])
async def restore_deleted_item(
    item_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Put a deleted item back in its original table."""
    table_name = trash.restore_item(db, current_user.id, item_id)
    cache.invalidate_user(current_user.id)
    return {"success": True, "message": f"{_label(table_name)} restored successfully"}


@router.delete("/{item_id}", dependencies=[Depends(rate_limit("default"))])
async def purge_deleted_item(
    item_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Permanently delete an item."""
    table_name = trash.purge_item(db, current_user.id, item_id)
    cache.invalidate_user(current_user.id)
    return {"success": True, "message": f"{_label(table_name)} permanently deleted"}
