# portfolio/core/auth.py
"""Session cookie handling."""
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from .config import settings
from .security import create_access_token, decode_access_token


@dataclass(frozen=True)
class SessionIdentity:
    """Caller identity carried by a valid session token."""
    user_id: uuid.UUID
    email: str
    role: str


def issue_session(response: Response, user) -> str:
    """Create a session token for ``user`` and store it in the cookie."""
    token = create_access_token(str(user.id), user.email, user.role)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return token


def clear_session(response: Response) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value="",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=0,
        path="/",
    )


def extract_token(request: Request) -> Optional[str]:
    """Session token from the cookie, falling back to an Authorization header."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def identity_from_token(token: Optional[str]) -> Optional[SessionIdentity]:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        return None
    return SessionIdentity(
        user_id=user_id,
        email=payload.get("email", ""),
        role=payload.get("role", "user"),
    )
