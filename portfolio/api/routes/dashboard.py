# portfolio/api/routes/dashboard.py
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date

from portfolio.api.deps import get_current_identity
from portfolio.core.auth import SessionIdentity
from portfolio.core.database import get_async_session
from portfolio.crud.category import get_categories_for_user
from portfolio.schemas.category import DashboardSummary, PortfolioTotals, category_to_read
from portfolio.schemas.common import ApiResponse
from portfolio.utils.export import export_categories_csv
from portfolio.utils.portfolio import summarize_portfolio

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("/summary", response_model=ApiResponse[DashboardSummary])
async def get_dashboard_summary(
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    """
    Portfolio totals plus every category with its derived values:
    - totals: invested, current, expected, profit/loss (amount and %)
    - categories: same numbers per category, entries included
    """
    categories = await get_categories_for_user(identity.user_id, db)
    summary = DashboardSummary(
        totals=PortfolioTotals(**summarize_portfolio(categories)),
        categories=[category_to_read(c) for c in categories],
    )
    return ApiResponse(data=summary)

@router.get("/export")
async def export_portfolio_csv(
    db: AsyncSession = Depends(get_async_session),
    identity: SessionIdentity = Depends(get_current_identity),
):
    """Download the portfolio as CSV (one row per entry)."""
    categories = await get_categories_for_user(identity.user_id, db)
    filename = f"portfolio-export-{date.today().isoformat()}.csv"
    return Response(
        content=export_categories_csv(categories).encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
