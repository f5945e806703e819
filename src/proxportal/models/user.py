"""User model for dashboard accounts."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proxportal.models.base import Base, TimestampMixin


class UserRole(str, Enum):
    """Dashboard permission level."""

    ADMIN = "admin"
    USER = "user"  # May operate VMs but not manage servers or users
    READONLY = "readonly"


class User(Base, TimestampMixin):
    """Local user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(String(20), default=UserRole.USER, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    require_password_change: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Tracking
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    servers: Mapped[list["ProxmoxServer"]] = relationship(  # noqa: F821
        "ProxmoxServer", back_populates="owner", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
