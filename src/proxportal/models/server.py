"""Registered Proxmox VE servers."""

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proxportal.models.base import Base, TimestampMixin


class ProxmoxServer(Base, TimestampMixin):
    """A Proxmox host the dashboard forwards calls to.

    Either an API token (token_id/token_secret) or a PAM/PVE login
    (username/password) must be present. The token wins when both are.
    """

    __tablename__ = "proxmox_servers"
    __table_args__ = (Index("ix_proxmox_servers_user_host_port", "user_id", "host", "port"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    port: Mapped[int] = mapped_column(Integer, default=8006, nullable=False)

    # API token auth, e.g. "root@pam!dashboard"
    token_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    token_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Ticket auth, e.g. "root@pam"
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    verify_ssl: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Owner
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    owner: Mapped["User"] = relationship("User", back_populates="servers")  # noqa: F821

    def __repr__(self) -> str:
        return f"<ProxmoxServer {self.id}: {self.name} ({self.host}:{self.port})>"

    @property
    def uses_token_auth(self) -> bool:
        return bool(self.token_id and self.token_secret)

    @property
    def auth_method(self) -> str:
        return "token" if self.uses_token_auth else "password"
