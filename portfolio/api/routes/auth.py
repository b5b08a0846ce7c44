# portfolio/api/routes/auth.py
import logging
import re

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.api.deps import get_current_user
from portfolio.core import email as notifications
from portfolio.core.auth import clear_session, issue_session
from portfolio.core.database import get_async_session
from portfolio.core.errors import (
    EmailDeliveryError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from portfolio.core.security import get_password_hash, verify_password
from portfolio.crud.user import (
    create_user,
    get_user_by_email,
    normalize_email,
    save_user,
    set_password_reset_code,
)
from portfolio.models.user import User
from portfolio.schemas.common import ApiResponse, MessageResponse
from portfolio.schemas.user import (
    MIN_PASSWORD_LENGTH,
    ChangeEmailRequest,
    ChangePasswordRequest,
    CodeRequest,
    EmailRequest,
    ResetPasswordRequest,
    SignInChallenge,
    SignInRequest,
    SignUpRequest,
    UserEnvelope,
    UserRead,
    VerifyEmailChangeRequest,
)
from portfolio.utils import one_time_code
from portfolio.utils.one_time_code import EMAIL_CHANGE, PASSWORD_RESET, TWO_FACTOR, CodeCheck

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _user_envelope(user: User, with_two_factor: bool = False) -> UserEnvelope:
    read = UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        two_factor_enabled=bool(user.two_factor_enabled) if with_two_factor else None,
    )
    return UserEnvelope(user=read)


async def _check_code(user: User, slot, supplied, db: AsyncSession) -> None:
    """Run a code through its state machine; persist clearing and raise on failure."""
    result = slot.check(user, supplied, now=one_time_code.utcnow())
    if result == CodeCheck.EXPIRED:
        await save_user(user, db)
    if result != CodeCheck.VERIFIED:
        raise ValidationError(slot.message(result))


# ------------------------------------------------------------
# SIGN UP / SIGN IN / SIGN OUT
# ------------------------------------------------------------
@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[UserEnvelope])
async def signup(
    body: SignUpRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
):
    if not body.email or not body.password or not body.name:
        raise ValidationError("Email, password, and name are required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not EMAIL_PATTERN.match(normalize_email(body.email)):
        raise ValidationError("Invalid email format")

    if await get_user_by_email(body.email, db):
        raise ValidationError("User with this email already exists")

    user = await create_user(
        email=body.email,
        password=body.password,
        name=body.name,
        role=body.role or "user",
        two_factor_enabled=True,
        db=db,
    )
    logger.info(f"✅ User {user.email} signed up")

    issue_session(response, user)
    return ApiResponse(data=_user_envelope(user))


@router.post("/signin")
async def signin(
    body: SignInRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
):
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    user = await get_user_by_email(body.email, db)
    if not user or not verify_password(body.password, user.hashed_password):
        raise UnauthenticatedError("Invalid email or password")

    if user.two_factor_enabled:
        if not body.code:
            code = TWO_FACTOR.issue(user, now=one_time_code.utcnow())
            await save_user(user, db)
            if not await notifications.send_two_factor_code(user.email, code, user.name):
                raise EmailDeliveryError("Failed to send 2FA code. Please try again.")
            return SignInChallenge(message="Two-factor authentication code sent to your email")

        result = TWO_FACTOR.check(user, body.code, now=one_time_code.utcnow())
        if result == CodeCheck.EXPIRED:
            await save_user(user, db)
        if result == CodeCheck.INVALID:
            raise UnauthenticatedError(TWO_FACTOR.message(result))
        if result != CodeCheck.VERIFIED:
            raise ValidationError(TWO_FACTOR.message(result))
        await save_user(user, db)

    issue_session(response, user)
    logger.info(f"User {user.email} signed in")
    return ApiResponse(data=_user_envelope(user))


@router.post("/signout", response_model=MessageResponse)
async def signout(response: Response):
    clear_session(response)
    return MessageResponse(message="Signed out successfully")


@router.get("/me", response_model=ApiResponse[UserEnvelope])
async def me(user: User = Depends(get_current_user)):
    return ApiResponse(data=_user_envelope(user, with_two_factor=True))


# ------------------------------------------------------------
# TWO-FACTOR AUTHENTICATION
# ------------------------------------------------------------
@router.post("/2fa/enable", response_model=MessageResponse)
async def enable_two_factor(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    code = TWO_FACTOR.issue(user, now=one_time_code.utcnow())
    await save_user(user, db)

    if not await notifications.send_two_factor_code(user.email, code, user.name):
        raise EmailDeliveryError("Failed to send verification code. Please check your email configuration.")
    return MessageResponse(message="Verification code sent to your email")


@router.post("/2fa/verify", response_model=MessageResponse)
async def verify_two_factor(
    body: CodeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if not body.code:
        raise ValidationError("Verification code is required")

    await _check_code(user, TWO_FACTOR, body.code, db)
    user.two_factor_enabled = True
    await save_user(user, db)
    return MessageResponse(message="Two-factor authentication enabled successfully")


@router.post("/2fa/disable", response_model=MessageResponse)
async def disable_two_factor(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    user.two_factor_enabled = False
    TWO_FACTOR.clear(user)
    await save_user(user, db)
    return MessageResponse(message="Two-factor authentication disabled successfully")


@router.post("/2fa/send-code", response_model=MessageResponse)
async def send_two_factor_code(
    body: EmailRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Pre-session resend; never reveals whether the account exists."""
    if not body.email:
        raise ValidationError("Email is required")

    user = await get_user_by_email(body.email, db)
    if not user:
        return MessageResponse(message="If an account exists with this email, a verification code has been sent.")

    if not user.two_factor_enabled:
        raise ValidationError("Two-factor authentication is not enabled for this account")

    code = TWO_FACTOR.issue(user, now=one_time_code.utcnow())
    await save_user(user, db)

    if not await notifications.send_two_factor_code(user.email, code, user.name):
        raise EmailDeliveryError("Failed to send verification code. Please try again later.")
    return MessageResponse(message="Verification code sent to your email")


# ------------------------------------------------------------
# EMAIL / PASSWORD CHANGES
# ------------------------------------------------------------
@router.post("/change-email")
async def request_email_change(
    body: ChangeEmailRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if not body.new_email:
        raise ValidationError("New email is required")

    new_email = normalize_email(body.new_email)
    if not EMAIL_PATTERN.match(new_email):
        raise ValidationError("Invalid email format")
    if new_email == user.email:
        raise ValidationError("New email must be different from current email")
    if await get_user_by_email(new_email, db):
        raise ValidationError("This email is already in use")

    code = EMAIL_CHANGE.issue(user, now=one_time_code.utcnow())
    user.pending_email = new_email
    await save_user(user, db)

    if not await notifications.send_email_verification_code(new_email, code, user.name):
        raise EmailDeliveryError("Failed to send verification code. Please check your email configuration.")

    return {
        "success": True,
        "message": "Verification code sent to your new email address",
        "pendingEmail": new_email,
    }


@router.put("/change-email", response_model=ApiResponse[UserEnvelope])
async def verify_email_change(
    body: VerifyEmailChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if not body.code or not body.new_email:
        raise ValidationError("Verification code and new email are required")

    new_email = normalize_email(body.new_email)
    if user.pending_email and new_email != user.pending_email:
        raise ValidationError("Email verification failed")
    if new_email == user.email:
        raise ValidationError("Email verification failed")

    await _check_code(user, EMAIL_CHANGE, body.code, db)

    # The address may have been claimed while the code was pending
    if await get_user_by_email(new_email, db):
        await save_user(user, db)
        raise ValidationError("This email is already in use")

    old_email = user.email
    user.email = new_email
    user.pending_email = None
    await save_user(user, db)
    logger.info(f"User {old_email} changed email to {new_email}")

    return ApiResponse(data=_user_envelope(user), message="Email changed successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if not body.current_password or not body.new_password:
        raise ValidationError("Current password and new password are required")
    if len(body.new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if not verify_password(body.current_password, user.hashed_password):
        raise UnauthenticatedError("Current password is incorrect")
    if verify_password(body.new_password, user.hashed_password):
        raise ValidationError("New password must be different from current password")

    user.hashed_password = get_password_hash(body.new_password)
    await save_user(user, db)
    return MessageResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: EmailRequest,
    db: AsyncSession = Depends(get_async_session),
):
    if not body.email:
        raise ValidationError("Email is required")

    user = await get_user_by_email(body.email, db)
    if not user:
        return MessageResponse(message="If an account exists with this email, a password reset code has been sent.")

    now = one_time_code.utcnow()
    code = one_time_code.generate_code()
    if not await set_password_reset_code(user.id, code, now + PASSWORD_RESET.lifetime, db):
        raise NotFoundError("User not found. Please try again.")

    # Code stays stored on failure so the user can still use it
    if not await notifications.send_password_reset_code(user.email, code, user.name):
        raise EmailDeliveryError("Failed to send reset code. Please try again later.")

    return MessageResponse(message="Password reset code sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_async_session),
):
    if not body.email or not body.code or not body.new_password:
        raise ValidationError("Email, verification code, and new password are required")
    if len(body.new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    user = await get_user_by_email(body.email, db)
    if not user:
        raise ValidationError("Invalid email or verification code")

    await _check_code(user, PASSWORD_RESET, body.code, db)

    user.hashed_password = get_password_hash(body.new_password)
    await save_user(user, db)
    logger.info(f"Password reset completed for user {user.email}")
    return MessageResponse(message="Password reset successfully. You can now sign in with your new password.")
