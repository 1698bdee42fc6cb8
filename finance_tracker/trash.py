# finance_tracker/trash.py
# Soft-delete bin: snapshot rows before deleting them so they can be restored

import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def move_to_trash(db: Session, user_id: str, table_name: str, row) -> models.DeletedItem:
    """Snapshot `row` into deleted_items and delete it, in one commit."""
    if table_name not in models.TRASHABLE_MODELS:
        raise ValueError(f"Table {table_name} cannot be trashed")

    record_id = row.id
    item = models.DeletedItem(
        user_id=user_id,
        table_name=table_name,
        record_id=record_id,
        record_data=models.to_dict(row),
    )
    db.add(item)
    db.delete(row)
    db.commit()
    db.refresh(item)
    logger.info("Moved %s %s to trash for user %s", table_name, record_id, user_id)
    return item


def list_trash(db: Session, user_id: str, table_name: Optional[str] = None) -> Dict:
    query = db.query(models.DeletedItem).filter(models.DeletedItem.user_id == user_id)
    if table_name:
        query = query.filter(models.DeletedItem.table_name == table_name)
    items: List[models.DeletedItem] = query.order_by(models.DeletedItem.deleted_at.desc()).all()

    grouped = {name: [] for name in models.TRASHABLE_MODELS}
    for item in items:
        grouped.setdefault(item.table_name, []).append(item)
    return {"deleted_items": items, "grouped": grouped, "total": len(items)}


def get_trash_item(db: Session, user_id: str, item_id: str) -> models.DeletedItem:
    item = models.get_owned(db, models.DeletedItem, item_id, user_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Deleted item not found"
        )
    return item


def _detach_missing_category(db: Session, user_id: str, data: dict):
    # A category deleted after this row was trashed leaves the row uncategorized
    category_id = data.get("category_id")
    if category_id and not models.get_owned(db, models.Category, category_id, user_id):
        data["category_id"] = None


def restore_item(db: Session, user_id: str, item_id: str) -> str:
    """Re-insert the snapshot under its original id. Returns the table name."""
    item = get_trash_item(db, user_id, item_id)
    model = models.TRASHABLE_MODELS.get(item.table_name)
    if model is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot restore items from {item.table_name}"
        )

    if db.query(model).filter(model.id == item.record_id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A record with this id already exists"
        )

    table_name, record_id = item.table_name, item.record_id
    data = dict(item.record_data)
    data["user_id"] = user_id
    if table_name != "categories":
        _detach_missing_category(db, user_id, data)

    try:
        db.add(models.from_dict(model, data))
        db.delete(item)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Error restoring %s %s: %s", table_name, record_id, e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Item conflicts with an existing record"
        )

    logger.info("Restored %s %s for user %s", table_name, record_id, user_id)
    return table_name


def purge_item(db: Session, user_id: str, item_id: str) -> str:
    """Delete the trash entry for good, along with any leftover original row."""
    item = get_trash_item(db, user_id, item_id)
    table_name, record_id = item.table_name, item.record_id
    model = models.TRASHABLE_MODELS.get(table_name)
    if model is not None:
        leftover = models.get_owned(db, model, record_id, user_id)
        if leftover:
            db.delete(leftover)
    db.delete(item)
    db.commit()
    logger.info("Permanently deleted %s %s for user %s", table_name, record_id, user_id)
    return table_name
