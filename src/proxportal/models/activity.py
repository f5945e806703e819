"""Activity log for tracking user actions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proxportal.models.base import Base, utcnow


class ActivityStatus(str, Enum):
    """Outcome of a logged action."""

    SUCCESS = "success"
    FAILURE = "failure"  # 4xx
    ERROR = "error"  # 5xx


class ActivityLog(Base):
    """A single user action."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, index=True
    )

    # Actor
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user: Mapped["User"] = relationship("User")  # noqa: F821
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Action
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # JSON object
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ActivityStatus] = mapped_column(
        String(20), default=ActivityStatus.SUCCESS, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.id}: {self.action} ({self.status})>"
