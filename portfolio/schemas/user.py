# portfolio/schemas/user.py
from typing import Optional
import uuid
from pydantic import Field
from portfolio.schemas.common import CamelModel

MIN_PASSWORD_LENGTH = 6

# Public fields returned by the auth endpoints
class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    two_factor_enabled: Optional[bool] = None

class UserEnvelope(CamelModel):
    user: UserRead

class SignUpRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None

class SignInRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = Field(None, description="2FA code from the email, second step only")

class SignInChallenge(CamelModel):
    success: bool = False
    requires_2fa: bool = Field(True, alias="requires2FA")
    message: str

class CodeRequest(CamelModel):
    code: Optional[str] = None

class EmailRequest(CamelModel):
    email: Optional[str] = None

class ChangeEmailRequest(CamelModel):
    new_email: Optional[str] = None

class VerifyEmailChangeRequest(CamelModel):
    code: Optional[str] = None
    new_email: Optional[str] = None

class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None

class ResetPasswordRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None
    new_password: Optional[str] = None
