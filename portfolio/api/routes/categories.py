# portfolio/api/routes/categories.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import List
import logging

from portfolio.api.deps import get_current_identity
from portfolio.core.auth import SessionIdentity
from portfolio.core.database import get_async_session
from portfolio.core.errors import InternalError
from portfolio.crud.category import (
    create_category_for_user,
    delete_category,
    get_categories_for_user,
    require_category,
    update_category,
)
from portfolio.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate, category_to_read
from portfolio.schemas.common import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])

@router.get("", response_model=ApiResponse[List[CategoryRead]])
async def read_categories(
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    categories = await get_categories_for_user(identity.user_id, db)
    return ApiResponse(data=[category_to_read(c) for c in categories])

@router.post("", response_model=ApiResponse[CategoryRead], status_code=status.HTTP_201_CREATED)
async def create_category(
    cat_in: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    try:
        category = await create_category_for_user(identity.user_id, cat_in, db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating category for user {identity.user_id}: {str(e)}")
        raise InternalError("An error occurred while creating the category")
    logger.info(f"Category '{category.slug}' created for user {identity.user_id}")
    return ApiResponse(data=category_to_read(category))

@router.get("/{slug}", response_model=ApiResponse[CategoryRead])
async def read_category(
    slug: str,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    category = await require_category(slug, identity.user_id, db)
    return ApiResponse(data=category_to_read(category))

@router.put("/{slug}", response_model=ApiResponse[CategoryRead])
async def update_category_endpoint(
    slug: str,
    cat_in: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    try:
        category = await update_category(slug, identity.user_id, cat_in, db=db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating category '{slug}': {str(e)}")
        raise InternalError("Database error occurred while updating category")
    return ApiResponse(data=category_to_read(category))

@router.delete("/{slug}", response_model=ApiResponse[CategoryRead])
async def delete_category_endpoint(
    slug: str,
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    category = await require_category(slug, identity.user_id, db)
    deleted = category_to_read(category)
    try:
        await delete_category(category, db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting category '{slug}': {str(e)}")
        raise InternalError("Database error occurred while deleting category")
    return ApiResponse(data=deleted)
