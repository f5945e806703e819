"""SQLAlchemy ORM models."""

from proxportal.models.activity import ActivityLog, ActivityStatus
from proxportal.models.base import Base, TimestampMixin, utcnow
from proxportal.models.branding import (
    DEFAULT_COMPANY_NAME,
    DEFAULT_SETTINGS_ID,
    WhiteLabelSettings,
)
from proxportal.models.server import ProxmoxServer
from proxportal.models.user import User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "User",
    "UserRole",
    "ProxmoxServer",
    "WhiteLabelSettings",
    "DEFAULT_SETTINGS_ID",
    "DEFAULT_COMPANY_NAME",
    "ActivityLog",
    "ActivityStatus",
]
