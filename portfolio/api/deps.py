# portfolio/api/deps.py
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.core.auth import SessionIdentity, extract_token, identity_from_token
from portfolio.core.database import get_async_session
from portfolio.core.errors import NotFoundError, UnauthenticatedError
from portfolio.crud.user import get_user_by_id
from portfolio.models.user import User


async def get_optional_identity(request: Request) -> Optional[SessionIdentity]:
    return identity_from_token(extract_token(request))


async def get_current_identity(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
) -> SessionIdentity:
    """
    Caller identity from the signed session token. The token is trusted as-is;
    routes that need the user row use ``get_current_user``.
    """
    if identity is None:
        raise UnauthenticatedError()
    return identity


async def get_current_user(
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    user = await get_user_by_id(identity.user_id, db)
    if not user:
        raise NotFoundError("User not found")
    return user
