"""
Database utilities for concurrency conflicts and error handling
"""
import asyncio
import functools
import logging
from typing import Callable, Any, TypeVar, cast, Awaitable, Optional, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)

# Define a type variable for the return type of the decorated function
T = TypeVar('T')


def _find_session(args: Tuple[Any, ...], kwargs: dict) -> Optional[AsyncSession]:
    session = kwargs.get("db")
    if isinstance(session, AsyncSession):
        return session
    for arg in args:
        if isinstance(arg, AsyncSession):
            return arg
    return None


def with_version_retry(
    max_retries: int = 3,
    retry_delay: float = 0.05,
    retry_on: Tuple[Type[BaseException], ...] = (StaleDataError,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that re-runs a read-modify-write operation when its versioned
    UPDATE lost a race.

    The wrapped coroutine must take the ``AsyncSession`` (positionally or as
    ``db=``) and must re-read everything it mutates, because the session is
    rolled back before each retry.

    Args:
        max_retries: Maximum number of retries before giving up
        retry_delay: Base delay between retries in seconds

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            retries = 0
            last_error: Optional[BaseException] = None
            session = _find_session(args, kwargs)

            while retries <= max_retries:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    retries += 1
                    last_error = e
                    if session is not None:
                        await session.rollback()

                    if retries <= max_retries:
                        delay = retry_delay * (2 ** (retries - 1))  # Exponential backoff
                        logger.warning(
                            f"Concurrent update detected in {func.__name__}: {str(e)}. "
                            f"Retrying in {delay:.2f}s... (Attempt {retries}/{max_retries})"
                        )
                        await asyncio.sleep(delay)

            # If we get here, we've exhausted all retries
            logger.error(f"{func.__name__} failed after {max_retries} retries: {last_error}")
            if last_error:
                raise last_error
            raise RuntimeError("Database operation failed with unknown error")

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator
