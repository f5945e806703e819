"""Settings service for white-label branding."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.models import DEFAULT_COMPANY_NAME, DEFAULT_SETTINGS_ID, WhiteLabelSettings
from proxportal.schemas import WhiteLabelUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for the single branding record."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self) -> WhiteLabelSettings:
        """Get the branding record, creating it with defaults on first use.

        When a concurrent request inserts the row first, that row is used.
        """
        settings = await self.db.get(WhiteLabelSettings, DEFAULT_SETTINGS_ID)
        if settings is not None:
            return settings

        settings = WhiteLabelSettings(id=DEFAULT_SETTINGS_ID, company_name=DEFAULT_COMPANY_NAME)
        self.db.add(settings)
        try:
            await self.db.flush()
        except IntegrityError:
            logger.info("Branding record created concurrently, reloading it")
            await self.db.rollback()
            settings = await self.db.get(WhiteLabelSettings, DEFAULT_SETTINGS_ID)
        return settings

    async def update(self, data: WhiteLabelUpdate) -> WhiteLabelSettings:
        """Apply the fields that were sent. An explicit null clears an image or color."""
        settings = await self.get()
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("company_name", ...) is None:
            del update_data["company_name"]

        for field, value in update_data.items():
            setattr(settings, field, value)

        await self.db.flush()
        logger.info(f"Updated branding fields: {', '.join(sorted(update_data)) or 'none'}")
        return settings

    async def reset(self) -> WhiteLabelSettings:
        """Restore the default branding."""
        settings = await self.get()
        settings.company_name = DEFAULT_COMPANY_NAME
        settings.logo_data = None
        settings.favicon_data = None
        settings.login_background_data = None
        settings.primary_color = None

        await self.db.flush()
        logger.info("Branding reset to defaults")
        return settings
