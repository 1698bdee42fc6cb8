# finance_tracker/routers/users.py
# Current user profile endpoints

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime

from .. import models, schemas
from ..dependencies import get_current_user, get_db, rate_limit
from ..sanitize import sanitize_strict, sanitize_url

router = APIRouter()


@router.get("/me", response_model=schemas.User, dependencies=[Depends(rate_limit("read"))])
async def get_me(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=schemas.User, dependencies=[Depends(rate_limit("default"))])
async def update_me(
    profile: schemas.UserProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update name and avatar."""
    update_data = profile.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name"):
        if field in update_data:
            update_data[field] = sanitize_strict(update_data[field]) or None
    if "avatar_url" in update_data:
        update_data["avatar_url"] = sanitize_url(update_data["avatar_url"]) or None

    for field, value in update_data.items():
        setattr(current_user, field, value)
    current_user.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(current_user)
    return current_user
