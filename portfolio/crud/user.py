# portfolio/crud/user.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update
from typing import Optional
from datetime import datetime
import uuid

from portfolio.core.security import get_password_hash
from portfolio.models.user import User
import portfolio.models.category  # noqa: F401  (registers the Category mapper for User.categories)

def normalize_email(email: str) -> str:
    return email.strip().lower()

async def get_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()

async def get_user_by_id(user_id: uuid.UUID, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()

async def create_user(
    email: str,
    password: str,
    name: str,
    db: AsyncSession,
    role: str = "user",
    two_factor_enabled: bool = True,
) -> User:
    user = User(
        email=normalize_email(email),
        hashed_password=get_password_hash(password),
        name=name.strip(),
        role="admin" if role == "admin" else "user",
        two_factor_enabled=two_factor_enabled,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user

async def save_user(user: User, db: AsyncSession) -> User:
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user

async def set_password_reset_code(user_id: uuid.UUID, code: str, expiry: datetime, db: AsyncSession) -> bool:
    """Single conditional update; False when the user row no longer exists."""
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(password_reset_code=code, password_reset_expiry=expiry)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount == 1
