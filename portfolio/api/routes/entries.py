# portfolio/api/routes/entries.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging

from portfolio.api.deps import get_current_identity
from portfolio.core.auth import SessionIdentity
from portfolio.core.database import get_async_session
from portfolio.core.errors import InternalError, ValidationError
from portfolio.crud.category import add_entry, delete_entry, update_entry
from portfolio.schemas.category import CategoryRead, EntryCreate, EntryUpdate, category_to_read
from portfolio.schemas.common import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories/{slug}/entries", tags=["entries"])

REQUIRED_FIELDS = ("name", "quantity", "invested")

@router.post("", response_model=ApiResponse[CategoryRead], status_code=status.HTTP_201_CREATED)
async def create_entry(
    slug: str,
    entry_in: EntryCreate,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    if not entry_in.name or entry_in.quantity is None or entry_in.invested is None:
        raise ValidationError("Name, quantity, and invested are required")

    try:
        category = await add_entry(slug, identity.user_id, entry_in.model_dump(exclude_unset=True), db=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error adding entry to '{slug}': {str(e)}")
        raise InternalError("Database error occurred while adding entry")
    return ApiResponse(data=category_to_read(category))

@router.put("", response_model=ApiResponse[CategoryRead])
async def edit_entry(
    slug: str,
    entry_in: EntryUpdate,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    changes = entry_in.model_dump(exclude_unset=True, exclude={"entry_id", "entry_index"})
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")
    if "name" in changes and not changes["name"]:
        raise ValidationError("Name cannot be empty")

    try:
        category = await update_entry(
            slug,
            identity.user_id,
            entry_in.entry_id,
            entry_in.entry_index,
            changes,
            db=db,
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating entry in '{slug}': {str(e)}")
        raise InternalError("Database error occurred while updating entry")
    return ApiResponse(data=category_to_read(category))

@router.delete("", response_model=ApiResponse[CategoryRead])
async def remove_entry(
    slug: str,
    entry_index: Optional[int] = Query(None, alias="entryIndex"),
    entry_id: Optional[str] = Query(None, alias="entryId"),
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    try:
        category = await delete_entry(slug, identity.user_id, entry_id, entry_index, db=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting entry from '{slug}': {str(e)}")
        raise InternalError("Database error occurred while deleting entry")
    return ApiResponse(data=category_to_read(category))
