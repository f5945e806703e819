"""Activity log router (admin only)."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query, Request

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    AdminUser,
    request_context,
)
from proxportal.models import ActivityStatus
from proxportal.schemas import (
    ActivityLogPage,
    ActivityLogResponse,
    ActivityStats,
    ApiResponse,
    MessageResponse,
)
from proxportal.schemas.activity import ActivityUser, Pagination

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("", response_model=ApiResponse[ActivityLogPage])
async def list_activity(
    admin: AdminUser,
    activity: ActivityLogServiceDep,
    user_id: int | None = None,
    action: str | None = None,
    status: ActivityStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> ApiResponse[ActivityLogPage]:
    """List log entries, newest first."""
    entries, total = await activity.get_logs(
        user_id=user_id,
        action=action,
        status=status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )

    logs = [
        ActivityLogResponse(
            id=entry.id,
            created_at=entry.created_at,
            user_id=entry.user_id,
            user=ActivityUser.model_validate(entry.user) if entry.user else None,
            action=entry.action,
            resource=entry.resource,
            details=activity.parse_details(entry),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            status=entry.status,
        )
        for entry in entries
    ]
    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=activity.total_pages(total, limit),
    )
    return ApiResponse(data=ActivityLogPage(logs=logs, pagination=pagination))


@router.get("/stats", response_model=ApiResponse[ActivityStats])
async def activity_stats(
    admin: AdminUser,
    activity: ActivityLogServiceDep,
    days: Annotated[int, Query(ge=1, le=365)] = 30,
    user_id: int | None = None,
) -> ApiResponse[ActivityStats]:
    """Summarize recent activity."""
    stats = await activity.get_statistics(days=days, user_id=user_id)
    return ApiResponse(data=ActivityStats.model_validate(stats))


@router.delete("", response_model=MessageResponse)
async def cleanup_activity(
    request: Request,
    admin: AdminUser,
    activity: ActivityLogServiceDep,
    days_to_keep: Annotated[int, Query(ge=1)] = 90,
) -> MessageResponse:
    """Delete entries older than ``days_to_keep`` days."""
    deleted = await activity.cleanup(days_to_keep)
    await activity.log(
        admin.id,
        "activity.cleanup",
        details={"days_to_keep": days_to_keep, "deleted": deleted},
        **request_context(request),
    )
    return MessageResponse(message=f"Deleted {deleted} activity log entries")
