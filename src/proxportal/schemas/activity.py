"""Activity log schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from proxportal.models import ActivityStatus, UserRole


class ActivityUser(BaseModel):
    """The user behind a log entry."""

    id: int
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


class ActivityLogResponse(BaseModel):
    """A single activity log entry."""

    id: int
    created_at: datetime
    user_id: int
    user: ActivityUser | None = None
    action: str
    resource: str | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    status: ActivityStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ActivityLogPage(BaseModel):
    """A page of log entries, newest first."""

    logs: list[ActivityLogResponse]
    pagination: Pagination


class ActionCount(BaseModel):
    action: str
    count: int


class StatusCount(BaseModel):
    status: str
    count: int


class DayCount(BaseModel):
    date: str  # YYYY-MM-DD
    count: int


class ActivityStats(BaseModel):
    """Activity totals over a recent period."""

    days: int
    total_logs: int
    by_action: list[ActionCount]
    by_status: list[StatusCount]
    by_day: list[DayCount]
