"""Authentication schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, StringConstraints

from proxportal.core.security import check_password_strength
from proxportal.models import UserRole

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def validate_password_strength(value: str) -> str:
    problem = check_password_strength(value)
    if problem:
        raise ValueError(problem)
    return value


# Whitespace is stripped before the pattern check, case is folded after it
Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, to_lower=True, min_length=3, max_length=255, pattern=EMAIL_PATTERN
    ),
]
StrongPassword = Annotated[str, Field(min_length=8), AfterValidator(validate_password_strength)]
Username = Annotated[str, Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_.-]+$")]
DisplayName = Annotated[str, Field(min_length=2, max_length=100)]


class LoginRequest(BaseModel):
    """Login credentials."""

    email: Email
    password: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    """User creation data."""

    email: Email
    password: StrongPassword
    name: DisplayName
    username: Username | None = None
    role: UserRole = UserRole.USER


class RegisterRequest(BaseModel):
    """Self-service registration. New accounts always get the ``user`` role."""

    email: Email
    password: StrongPassword
    name: DisplayName
    username: Username | None = None


class SetupRequest(BaseModel):
    """Initial setup data for the first admin."""

    email: Email
    password: StrongPassword
    name: DisplayName


class SetupStatus(BaseModel):
    """Whether the first admin still has to be created."""

    needs_setup: bool
    message: str


class ChangePasswordRequest(BaseModel):
    """Password change for the current user."""

    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword


class UserResponse(BaseModel):
    """User data for responses."""

    id: int
    email: str
    username: str
    name: str
    role: UserRole
    is_active: bool
    require_password_change: bool = False
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Issued access token."""

    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse
