"""White-label settings schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

COLOR_PATTERN = r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$"

# Data URLs of uploaded images
MAX_IMAGE_LENGTH = 5 * 1024 * 1024


class WhiteLabelConfig(BaseModel):
    """Branding as served to the login page and the dashboard."""

    id: str
    company_name: str
    logo_data: str | None = None
    favicon_data: str | None = None
    login_background_data: str | None = None
    primary_color: str | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class WhiteLabelUpdate(BaseModel):
    """Partial branding update. Only fields that are sent are changed."""

    company_name: str | None = Field(None, min_length=1, max_length=255)
    logo_data: str | None = Field(None, max_length=MAX_IMAGE_LENGTH)
    favicon_data: str | None = Field(None, max_length=MAX_IMAGE_LENGTH)
    login_background_data: str | None = Field(None, max_length=MAX_IMAGE_LENGTH)
    primary_color: str | None = Field(None, pattern=COLOR_PATTERN)
