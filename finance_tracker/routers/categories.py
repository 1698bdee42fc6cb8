# finance_tracker/routers/categories.py
# Category management endpoints

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from .. import models, schemas
from ..cache import Cache
from ..dependencies import get_current_user, get_db, get_cache, rate_limit
from ..sanitize import sanitize_category_name, sanitize_strict
from ..trash import move_to_trash

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FIELD_LENGTH = 50  # categories.name and categories.icon columns


def _get_category(db: Session, category_id: str, user_id: str) -> models.Category:
    category = models.get_owned(db, models.Category, category_id, user_id)
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found"
        )
    return category


def _check_unique_name(db: Session, user_id: str, name: str, exclude_id: Optional[str] = None):
    query = db.query(models.Category).filter(
        models.Category.user_id == user_id,
        models.Category.name == name
    )
    if exclude_id:
        query = query.filter(models.Category.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category with this name already exists"
        )


def _check_length(value: Optional[str], label: str) -> Optional[str]:
    # Escaping can lengthen text past what the schema allowed
    if value and len(value) > MAX_FIELD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} must be at most {MAX_FIELD_LENGTH} characters"
        )
    return value


def _clean_name(name: str) -> str:
    cleaned = sanitize_category_name(name).strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category name is required"
        )
    return _check_length(cleaned, "Category name")


def _clean_icon(icon: Optional[str]) -> Optional[str]:
    return _check_length(sanitize_strict(icon) or None, "Icon")

# ===== CATEGORY CRUD =====

@router.get("/", response_model=List[schemas.Category], dependencies=[Depends(rate_limit("read"))])
async def get_categories(
    type: Optional[schemas.TransactionTypeEnum] = Query(None, description="income or expense"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the user's categories ordered by name."""
    query = db.query(models.Category).filter(models.Category.user_id == current_user.id)
    if type:
        query = query.filter(models.Category.type == type.value)
    return query.order_by(models.Category.name).all()


@router.get("/{category_id}", response_model=schemas.Category, dependencies=[Depends(rate_limit("read"))])
async def get_category(
    category_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _get_category(db, category_id, current_user.id)


@router.post("/", response_model=schemas.Category, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("default"))])
async def create_category(
    category_data: schemas.CategoryCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Create a category. Names are unique per user."""
    name = _clean_name(category_data.name)
    _check_unique_name(db, current_user.id, name)

    category = models.Category(
        user_id=current_user.id,
        name=name,
        color=sanitize_strict(category_data.color) or None,
        icon=_clean_icon(category_data.icon),
        type=category_data.type.value
    )
    db.add(category)
    db.commit()
    db.refresh(category)

    cache.invalidate_user(current_user.id)
    logger.info("Created category %s for user %s", category.id, current_user.id)
    return category


@router.put("/{category_id}", response_model=schemas.Category, dependencies=[Depends(rate_limit("default"))])
async def update_category(
    category_id: str,
    category_data: schemas.CategoryUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    category = _get_category(db, category_id, current_user.id)
    update_data = category_data.model_dump(exclude_unset=True)

    if update_data.get("name") is not None:
        update_data["name"] = _clean_name(update_data["name"])
        _check_unique_name(db, current_user.id, update_data["name"], exclude_id=category.id)
    if "color" in update_data:
        update_data["color"] = sanitize_strict(update_data["color"]) or None
    if "icon" in update_data:
        update_data["icon"] = _clean_icon(update_data["icon"])
    if update_data.get("type") is not None:
        update_data["type"] = update_data["type"].value

    for field, value in update_data.items():
        if value is None and field in ("name", "type"):
            continue
        setattr(category, field, value)

    db.commit()
    db.refresh(category)

    cache.invalidate_user(current_user.id)
    return category


@router.delete("/{category_id}", dependencies=[Depends(rate_limit("default"))])
async def delete_category(
    category_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Move a category to the trash. Categories still used by transactions cannot be deleted."""
    category = _get_category(db, category_id, current_user.id)

    in_use = db.query(models.Transaction).filter(
        models.Transaction.user_id == current_user.id,
        models.Transaction.category_id == category.id
    ).count()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with existing transactions"
        )

    item = move_to_trash(db, current_user.id, "categories", category)

    cache.invalidate_user(current_user.id)
    return {"message": "Category moved to trash", "deleted_item_id": item.id}
