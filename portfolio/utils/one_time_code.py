# portfolio/utils/one_time_code.py
"""
Email one-time codes (2FA, email change, password reset).

Each flow keeps a ``(code, expiry)`` pair on the user row. A flow is in
``NoCode`` while either is empty and in ``CodePending`` otherwise; verifying
moves it to VERIFIED, EXPIRED or INVALID. Expired and verified codes are
cleared, invalid ones are kept so the user may retry.
"""
import enum
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC "now"; every expiry check goes through here."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_code() -> str:
    """Uniformly random 6-digit code."""
    return str(100000 + secrets.randbelow(900000))


class CodeCheck(str, enum.Enum):
    VERIFIED = "verified"
    MISSING = "missing"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class CodeSlot:
    """Where a flow keeps its code on the user, and how long codes live."""
    code_attr: str
    expiry_attr: str
    lifetime: timedelta
    label: str
    strip: bool = False

    def issue(self, user: Any, now: Optional[datetime] = None) -> str:
        code = generate_code()
        setattr(user, self.code_attr, code)
        setattr(user, self.expiry_attr, (now or utcnow()) + self.lifetime)
        return code

    def clear(self, user: Any) -> None:
        setattr(user, self.code_attr, None)
        setattr(user, self.expiry_attr, None)

    def check(self, user: Any, supplied: Any, now: Optional[datetime] = None) -> CodeCheck:
        stored = getattr(user, self.code_attr)
        expiry = getattr(user, self.expiry_attr)
        if self.strip and stored is not None:
            stored = str(stored).strip()
        if not stored or expiry is None:
            return CodeCheck.MISSING

        if (now or utcnow()) > expiry:
            self.clear(user)
            return CodeCheck.EXPIRED

        supplied = str(supplied)
        if self.strip:
            supplied = supplied.strip()
        if supplied != stored:
            return CodeCheck.INVALID

        self.clear(user)
        return CodeCheck.VERIFIED

    def message(self, result: CodeCheck) -> str:
        if result == CodeCheck.MISSING:
            return f"No {self.label} code found. Please request a new code."
        if result == CodeCheck.EXPIRED:
            return f"{self.label[0].upper()}{self.label[1:]} code has expired. Please request a new code."
        if result == CodeCheck.INVALID:
            return f"Invalid {self.label} code"
        return ""


TWO_FACTOR = CodeSlot(
    code_attr="two_factor_code",
    expiry_attr="two_factor_code_expiry",
    lifetime=timedelta(minutes=10),
    label="2FA",
)

EMAIL_CHANGE = CodeSlot(
    code_attr="email_verification_code",
    expiry_attr="email_verification_expiry",
    lifetime=timedelta(minutes=30),
    label="verification",
)

PASSWORD_RESET = CodeSlot(
    code_attr="password_reset_code",
    expiry_attr="password_reset_expiry",
    lifetime=timedelta(minutes=30),
    label="password reset",
    strip=True,
)
