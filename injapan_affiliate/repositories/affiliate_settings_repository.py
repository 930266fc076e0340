"""
Affiliate settings repository.

Data access for the program settings singleton.
"""

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.constants import AFFILIATE_SETTINGS_ID
from injapan_affiliate.config.settings import settings
from injapan_affiliate.models.affiliate_settings import AffiliateSettings
from injapan_affiliate.repositories.base import BaseRepository


class AffiliateSettingsRepository(BaseRepository[AffiliateSettings]):
    """Repository for the affiliate settings singleton row."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize settings repository."""
        super().__init__(AffiliateSettings, session)

    async def get_settings(self) -> AffiliateSettings:
        """
        Get program settings, creating defaults on first read.

        Returns:
            Settings row
        """
        row = await self.get_by_id(AFFILIATE_SETTINGS_ID)
        if row:
            return row

        defaults = {
            "id": AFFILIATE_SETTINGS_ID,
            "default_commission_rate": settings.affiliate_default_commission_rate,
            "min_payout_amount": settings.affiliate_min_payout_amount,
            "payout_methods": settings.payout_methods,
            "terms_and_conditions": settings.affiliate_terms,
        }
        try:
            async with self.session.begin_nested():
                return await self.create(**defaults)
        except IntegrityError:
            # Created concurrently by another request
            row = await self.get_by_id(AFFILIATE_SETTINGS_ID)
            if row is None:
                raise
            return row

    async def update_settings(self, **changes: Any) -> AffiliateSettings:
        """
        Update program settings.

        Args:
            **changes: Column values to change

        Returns:
            Updated settings row
        """
        row = await self.get_settings()

        for key, value in changes.items():
            setattr(row, key, value)

        await self.session.flush()
        await self.session.refresh(row)
        return row
