# portfolio/models/category.py
import uuid
from sqlalchemy import Column, String, ForeignKey, Float, Integer, DateTime, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from portfolio.core.database import Base
from portfolio.models.user import _utcnow

# Single-column unique index left behind by the first schema version.
# It made slugs unique across *all* users and is dropped when found.
LEGACY_SLUG_INDEX = "ix_categories_slug"


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uq_categories_user_id_slug"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(length=100), nullable=False)
    slug = Column(String(length=120), nullable=False)
    display_name = Column(String(length=100), nullable=True)
    description = Column(String(length=500), nullable=True)
    # Category-level target return
    expected_percent = Column(Float, nullable=False, default=15.0)
    # Sum of the entries' explicit current values
    current_value = Column(Float, nullable=False, default=0.0)
    # Ordered list of entry objects, see portfolio.utils.portfolio
    entries = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="categories")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Category slug={self.slug} user_id={self.user_id}>"
