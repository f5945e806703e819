"""Activity log service for recording and reporting user actions."""

import json
import logging
import math
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from proxportal.models import ActivityLog, ActivityStatus, utcnow

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_KEYS = ("password", "token", "secret", "apikey", "api_key", "creditcard")


def sanitize(details: Any) -> Any:
    """Replace the values of sensitive keys, recursively."""
    if isinstance(details, dict):
        return {
            key: REDACTED
            if any(word in str(key).lower() for word in SENSITIVE_KEYS)
            else sanitize(value)
            for key, value in details.items()
        }
    if isinstance(details, list):
        return [sanitize(item) for item in details]
    return details


def status_for(status_code: int) -> ActivityStatus:
    """Map an HTTP status code onto a log status."""
    if status_code >= 500:
        return ActivityStatus.ERROR
    if status_code >= 400:
        return ActivityStatus.FAILURE
    return ActivityStatus.SUCCESS


class ActivityLogService:
    """Service for the activity log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        user_id: int,
        action: str,
        resource: str | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        status: ActivityStatus = ActivityStatus.SUCCESS,
    ) -> ActivityLog | None:
        """Record an action. Failures are logged and never raised.

        The entry is written with the request's transaction.
        """
        try:
            entry = ActivityLog(
                user_id=user_id,
                action=action,
                resource=resource,
                details=json.dumps(sanitize(details), default=str) if details else None,
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
                status=status,
            )
            self.db.add(entry)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to log activity {action} for user {user_id}: {e}")
            return None

        logger.info(f"Activity: user={user_id} action={action} status={status.value}")
        return entry

    async def get_logs(
        self,
        user_id: int | None = None,
        action: str | None = None,
        status: ActivityStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[ActivityLog], int]:
        """Get log entries, newest first, with optional filtering."""
        filters = []
        if user_id is not None:
            filters.append(ActivityLog.user_id == user_id)
        if action:
            filters.append(ActivityLog.action == action)
        if status:
            filters.append(ActivityLog.status == status)
        if start_date:
            filters.append(ActivityLog.created_at >= start_date)
        if end_date:
            filters.append(ActivityLog.created_at <= end_date)

        total_result = await self.db.execute(select(func.count(ActivityLog.id)).where(*filters))
        total = total_result.scalar_one()

        query = (
            select(ActivityLog)
            .where(*filters)
            .options(selectinload(ActivityLog.user))
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    @staticmethod
    def parse_details(entry: ActivityLog) -> dict[str, Any] | None:
        """Decode the stored JSON details of an entry."""
        if not entry.details:
            return None
        try:
            return json.loads(entry.details)
        except ValueError:
            logger.warning(f"Activity log {entry.id} has unreadable details")
            return None

    async def get_statistics(self, days: int = 30, user_id: int | None = None) -> dict[str, Any]:
        """Count entries over the last ``days`` days by action, status and day."""
        filters = [ActivityLog.created_at >= utcnow() - timedelta(days=days)]
        if user_id is not None:
            filters.append(ActivityLog.user_id == user_id)

        total_result = await self.db.execute(select(func.count(ActivityLog.id)).where(*filters))

        action_count = func.count(ActivityLog.id).label("count")
        by_action = await self.db.execute(
            select(ActivityLog.action, action_count)
            .where(*filters)
            .group_by(ActivityLog.action)
            .order_by(action_count.desc(), ActivityLog.action)
        )

        by_status = await self.db.execute(
            select(ActivityLog.status, func.count(ActivityLog.id))
            .where(*filters)
            .group_by(ActivityLog.status)
            .order_by(ActivityLog.status)
        )

        day = func.date(ActivityLog.created_at).label("day")
        by_day = await self.db.execute(
            select(day, func.count(ActivityLog.id))
            .where(*filters)
            .group_by(day)
            .order_by(day.desc())
        )

        return {
            "days": days,
            "total_logs": total_result.scalar_one(),
            "by_action": [{"action": action, "count": count} for action, count in by_action.all()],
            "by_status": [
                {"status": ActivityStatus(status).value, "count": count}
                for status, count in by_status.all()
            ],
            "by_day": [{"date": str(date), "count": count} for date, count in by_day.all()],
        }

    async def cleanup(self, days_to_keep: int = 90) -> int:
        """Delete entries older than ``days_to_keep`` days, returning how many went."""
        cutoff = utcnow() - timedelta(days=days_to_keep)
        result = await self.db.execute(delete(ActivityLog).where(ActivityLog.created_at < cutoff))
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} activity log entries older than {cutoff:%Y-%m-%d}")
        return deleted
