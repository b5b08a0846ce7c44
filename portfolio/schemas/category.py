# portfolio/schemas/category.py
from typing import List, Optional
from datetime import datetime
import uuid
from portfolio.schemas.common import CamelModel
from portfolio.utils.portfolio import summarize_category

class CategoryCreate(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    expected_percent: Optional[float] = None
    current_value: Optional[float] = None
    display_name: Optional[str] = None
    description: Optional[str] = None

class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    expected_percent: Optional[float] = None
    current_value: Optional[float] = None
    display_name: Optional[str] = None
    description: Optional[str] = None

class EntryCreate(CamelModel):
    name: Optional[str] = None
    quantity: Optional[float] = None
    invested: Optional[float] = None
    # Optional: omitted (or null) means "not tracked"; 0 is a real value
    current_value: Optional[float] = None
    expected_percent: Optional[float] = None

class EntryUpdate(CamelModel):
    # Address the entry by stable id (preferred) or by position
    entry_id: Optional[str] = None
    entry_index: Optional[int] = None
    name: Optional[str] = None
    quantity: Optional[float] = None
    invested: Optional[float] = None
    current_value: Optional[float] = None
    expected_percent: Optional[float] = None

class EntryRead(CamelModel):
    id: Optional[str] = None
    name: str
    quantity: float
    invested: float
    current_value: Optional[float] = None
    expected_percent: Optional[float] = None
    # Derived values, not stored
    display_current_value: float
    expected_value: float
    profit_loss: float
    profit_loss_percent: float

class CategoryRead(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    expected_percent: float
    current_value: float
    total_invested: float
    weighted_expected_percent: float
    expected_amount: float
    target_amount: float
    profit_loss: float
    profit_loss_percent: float
    entries: List[EntryRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

def category_to_read(category) -> CategoryRead:
    return CategoryRead(
        id=category.id,
        name=category.name,
        slug=category.slug,
        display_name=category.display_name,
        description=category.description,
        created_at=category.created_at,
        updated_at=category.updated_at,
        **summarize_category(category),
    )

class PortfolioTotals(CamelModel):
    total_invested: float
    current_value: float
    expected_amount: float
    profit_loss: float
    profit_loss_percent: float
    category_count: int
    entry_count: int

class DashboardSummary(CamelModel):
    totals: PortfolioTotals
    categories: List[CategoryRead]
