"""
Application error types.

Every error is an ``HTTPException`` so FastAPI routes can simply raise it; the
handlers in ``portfolio.main`` render it as ``{"success": false, "error": ...}``.
"""
from typing import Optional

from fastapi import HTTPException, status


class PortfolioError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class UnauthenticatedError(PortfolioError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class NotFoundError(PortfolioError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationError(PortfolioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class DuplicateSlugError(PortfolioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You already have a category with this slug. Please choose a different name or slug."


class EmailDeliveryError(PortfolioError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to send email. Please try again later."


class InternalError(PortfolioError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
