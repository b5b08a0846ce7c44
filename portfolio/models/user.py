# portfolio/models/user.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.orm import relationship
from portfolio.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(length=320), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String(length=150), nullable=False)
    role = Column(String(length=16), nullable=False, default="user")  # "admin" | "user"

    # Two-factor authentication (email codes)
    two_factor_enabled = Column(Boolean, nullable=False, default=True)
    two_factor_code = Column(String(length=6), nullable=True)
    two_factor_code_expiry = Column(DateTime, nullable=True)

    # Email change verification
    email_verified = Column(Boolean, nullable=False, default=True)
    email_verification_code = Column(String(length=6), nullable=True)
    email_verification_expiry = Column(DateTime, nullable=True)
    pending_email = Column(String(length=320), nullable=True)

    # Password reset
    password_reset_code = Column(String(length=6), nullable=True)
    password_reset_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    categories = relationship(
        "Category",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self):
        return f"<User email={self.email} role={self.role}>"
