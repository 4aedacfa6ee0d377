"""Authentication schemas."""

import re
from datetime import date, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from app.models.user import UserType


def validate_email_lenient(v: str) -> str:
    """Validate email with lenient rules that allow .local domains for testing."""
    if not v or "@" not in v:
        raise ValueError("Invalid email address")
    # Basic email pattern that allows .local and other test domains
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(pattern, v):
        raise ValueError("Invalid email address format")
    return v.lower()


LenientEmail = Annotated[str, AfterValidator(validate_email_lenient)]


class LoginRequest(BaseModel):
    """Login request. Length rules are not checked here so every bad
    credential gets the same 401."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    user_type: UserType | None = None


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: LenientEmail
    password: str = Field(min_length=1, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    date_of_birth: date | None = None
    user_type: UserType = UserType.PATIENT
    practice_tag: str | None = Field(default=None, max_length=50)
    gdpr_consent: bool = False
    marketing_consent: bool = False


class VerifyPracticeTagRequest(BaseModel):
    """Connection tag lookup."""

    practice_tag: str = Field(min_length=1, max_length=50)


class UserResponse(BaseModel):
    """Public view of a user account."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    user_type: UserType
    practice_id: int | None = None
    is_guest: bool = False
    gdpr_consent_given: bool = False
    marketing_consent_given: bool = False
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Session token, JWT and the signed-in user."""

    token: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class LogoutResponse(BaseModel):
    message: str
