"""White-label branding settings."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from proxportal.models.base import Base, TimestampMixin

DEFAULT_SETTINGS_ID = "default"
DEFAULT_COMPANY_NAME = "Proxmox Manager Portal"


class WhiteLabelSettings(Base, TimestampMixin):
    """Tenant branding. A single row with id ``default``."""

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=DEFAULT_SETTINGS_ID)
    company_name: Mapped[str] = mapped_column(
        String(255), default=DEFAULT_COMPANY_NAME, nullable=False
    )

    # Images are stored as data URLs
    logo_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    favicon_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    login_background_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    primary_color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<WhiteLabelSettings {self.id}: {self.company_name}>"
