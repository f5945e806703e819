"""User management schemas."""

from pydantic import BaseModel

from proxportal.models import UserRole
from proxportal.schemas.auth import DisplayName, Email, StrongPassword


class UserUpdate(BaseModel):
    """User update data (all fields optional)."""

    name: DisplayName | None = None
    email: Email | None = None
    role: UserRole | None = None
    password: StrongPassword | None = None


class UserStatusUpdate(BaseModel):
    """Activate or deactivate a user."""

    is_active: bool
