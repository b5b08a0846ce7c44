# portfolio/crud/category.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import func, text
from typing import Any, Dict, List, Optional, Tuple
import logging
import uuid

from portfolio.core.db_utils import with_version_retry
from portfolio.core.errors import DuplicateSlugError, InternalError, NotFoundError, ValidationError
from portfolio.models.category import Category, LEGACY_SLUG_INDEX
from portfolio.schemas.category import CategoryCreate, CategoryUpdate
from portfolio.utils.portfolio import (
    DEFAULT_CATEGORY_EXPECTED_PERCENT,
    apply_entry_changes,
    build_entry,
    ensure_entry_ids,
    recompute_current_value,
)
from portfolio.utils.slug import numbered_slug, require_slug

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────────────────────────
# READS
# ────────────────────────────────────────────────────────────────────────────────
async def get_categories_for_user(user_id: uuid.UUID, db: AsyncSession) -> List[Category]:
    result = await db.execute(
        select(Category).where(Category.user_id == user_id).order_by(Category.name)
    )
    return result.scalars().all()

async def get_category_by_slug(slug: str, user_id: uuid.UUID, db: AsyncSession) -> Optional[Category]:
    result = await db.execute(
        select(Category).where(Category.slug == slug, Category.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def require_category(slug: str, user_id: uuid.UUID, db: AsyncSession) -> Category:
    category = await get_category_by_slug(slug, user_id, db)
    if not category:
        raise NotFoundError("Category not found")
    return category

async def slug_taken(
    user_id: uuid.UUID,
    slug: str,
    db: AsyncSession,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    query = select(Category.id).where(Category.user_id == user_id, Category.slug == slug)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None

# ────────────────────────────────────────────────────────────────────────────────
# CATEGORY WRITES
# ────────────────────────────────────────────────────────────────────────────────
def _new_category(user_id: uuid.UUID, name: str, slug: str, cat_in: CategoryCreate) -> Category:
    return Category(
        user_id=user_id,
        name=name,
        slug=slug,
        expected_percent=cat_in.expected_percent if cat_in.expected_percent is not None
        else DEFAULT_CATEGORY_EXPECTED_PERCENT,
        current_value=cat_in.current_value or 0.0,
        display_name=cat_in.display_name or name,
        description=cat_in.description or "",
        entries=[],
    )

async def drop_legacy_slug_index(db: AsyncSession) -> None:
    """Remove the old slug-only unique index that blocks same slugs across users."""
    try:
        await db.execute(text(f"DROP INDEX IF EXISTS {LEGACY_SLUG_INDEX}"))
        await db.commit()
        logger.warning(f"Dropped legacy unique index {LEGACY_SLUG_INDEX} on categories.slug")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Could not drop legacy index {LEGACY_SLUG_INDEX}: {str(e)}")

async def create_category_for_user(user_id: uuid.UUID, cat_in: CategoryCreate, db: AsyncSession) -> Category:
    name = (cat_in.name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    slug = require_slug(cat_in.slug or name)

    if await slug_taken(user_id, slug, db):
        raise DuplicateSlugError()

    new_cat = _new_category(user_id, name, slug, cat_in)
    db.add(new_cat)
    try:
        await db.commit()
        return new_cat
    except IntegrityError as e:
        await db.rollback()
        # Lost a race against a same-user insert, or hit a legacy slug-only index
        if await slug_taken(user_id, slug, db):
            raise DuplicateSlugError()
        logger.warning(f"Slug conflict for '{slug}' without a same-user duplicate: {str(e.orig)}")

    await drop_legacy_slug_index(db)

    new_cat = _new_category(user_id, name, slug, cat_in)
    db.add(new_cat)
    try:
        await db.commit()
        logger.info(f"Category '{slug}' created after reconciling legacy index")
        return new_cat
    except IntegrityError as e:
        await db.rollback()
        if await slug_taken(user_id, slug, db):
            raise DuplicateSlugError()
        logger.error(f"Error retrying category insert after index fix: {str(e.orig)}")
        raise InternalError("Database error. Please try again or contact support.")

@with_version_retry()
async def update_category(slug: str, user_id: uuid.UUID, cat_in: CategoryUpdate, db: AsyncSession) -> Category:
    category = await require_category(slug, user_id, db)
    changes: Dict[str, Any] = cat_in.model_dump(exclude_unset=True)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        changes["name"] = name

    if changes.get("slug") is not None:
        new_slug = require_slug(changes["slug"])
        if new_slug != category.slug and await slug_taken(user_id, new_slug, db, exclude_id=category.id):
            raise DuplicateSlugError("You already have a category with this slug")
        changes["slug"] = new_slug

    for field, value in changes.items():
        # Non-nullable columns ignore explicit nulls
        if value is None and field in ("slug", "expected_percent", "current_value"):
            continue
        setattr(category, field, value)

    category_id = category.id
    db.add(category)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if changes.get("slug") and await slug_taken(user_id, changes["slug"], db, exclude_id=category_id):
            raise DuplicateSlugError("You already have a category with this slug")
        logger.error(f"Error updating category '{slug}': {str(e.orig)}")
        raise InternalError("Database error. Please try again or contact support.")
    return category

async def delete_category(category: Category, db: AsyncSession) -> None:
    await db.delete(category)
    await db.commit()

# ────────────────────────────────────────────────────────────────────────────────
# ENTRY WRITES (read-modify-write, version checked)
# ────────────────────────────────────────────────────────────────────────────────
def resolve_entry_position(
    entries: List[Dict[str, Any]],
    entry_id: Optional[str],
    entry_index: Optional[int],
) -> int:
    if entry_id is not None:
        for position, entry in enumerate(entries):
            if entry.get("id") == entry_id:
                return position
        raise NotFoundError("Entry not found")
    if entry_index is None:
        raise ValidationError("entryIndex is required")
    if entry_index < 0 or entry_index >= len(entries):
        raise ValidationError("Invalid entry index")
    return entry_index

def _store_entries(category: Category, entries: List[Dict[str, Any]]) -> None:
    # Assign a fresh list so the JSON column is flagged dirty
    category.entries = entries
    category.current_value = recompute_current_value(entries)

@with_version_retry()
async def add_entry(slug: str, user_id: uuid.UUID, fields: Dict[str, Any], db: AsyncSession) -> Category:
    category = await require_category(slug, user_id, db)
    entries = ensure_entry_ids(category.entries or [])
    entries.append(build_entry(fields))
    _store_entries(category, entries)
    await db.commit()
    return category

@with_version_retry()
async def update_entry(
    slug: str,
    user_id: uuid.UUID,
    entry_id: Optional[str],
    entry_index: Optional[int],
    changes: Dict[str, Any],
    db: AsyncSession,
) -> Category:
    category = await require_category(slug, user_id, db)
    entries = ensure_entry_ids(category.entries or [])
    position = resolve_entry_position(entries, entry_id, entry_index)
    entries[position] = apply_entry_changes(entries[position], changes)
    _store_entries(category, entries)
    await db.commit()
    return category

@with_version_retry()
async def delete_entry(
    slug: str,
    user_id: uuid.UUID,
    entry_id: Optional[str],
    entry_index: Optional[int],
    db: AsyncSession,
) -> Category:
    category = await require_category(slug, user_id, db)
    entries = ensure_entry_ids(category.entries or [])
    position = resolve_entry_position(entries, entry_id, entry_index)
    del entries[position]
    _store_entries(category, entries)
    await db.commit()
    return category

# ────────────────────────────────────────────────────────────────────────────────
# MAINTENANCE
# ────────────────────────────────────────────────────────────────────────────────
async def reconcile_duplicate_slugs(db: AsyncSession) -> List[Tuple[uuid.UUID, str, str]]:
    """
    Rename same-user duplicate slugs (left over from before the per-user
    constraint) to ``slug-1``, ``slug-2``, ... keeping the oldest category.

    Returns ``(category_id, old_slug, new_slug)`` for every rename.
    """
    result = await db.execute(
        select(Category.user_id, Category.slug)
        .group_by(Category.user_id, Category.slug)
        .having(func.count(Category.id) > 1)
    )
    groups = result.all()
    renamed: List[Tuple[uuid.UUID, str, str]] = []

    for user_id, slug in groups:
        result = await db.execute(
            select(Category)
            .where(Category.user_id == user_id, Category.slug == slug)
            .order_by(Category.created_at, Category.id)
        )
        duplicates = result.scalars().all()

        for i, category in enumerate(duplicates[1:], start=1):
            counter = i
            new_slug = numbered_slug(slug, counter)
            while await slug_taken(user_id, new_slug, db):
                counter += 1
                new_slug = numbered_slug(slug, counter)

            category.slug = new_slug
            await db.commit()
            renamed.append((category.id, slug, new_slug))
            logger.info(f"Renamed duplicate slug '{slug}' -> '{new_slug}' for user {user_id}")

    return renamed
