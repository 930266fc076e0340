"""
Affiliate repository.

Data access layer for AffiliateAccount model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.repositories.base import BaseRepository


class AffiliateRepository(BaseRepository[AffiliateAccount]):
    """Affiliate repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate repository."""
        super().__init__(AffiliateAccount, session)

    async def get_by_user_id(self, user_id: str) -> AffiliateAccount | None:
        """
        Get affiliate account owned by a user.

        Args:
            user_id: Identity-provider user id

        Returns:
            Affiliate account or None
        """
        return await self.get_by(user_id=user_id)

    async def get_by_referral_code(
        self, referral_code: str, include_archived: bool = False
    ) -> AffiliateAccount | None:
        """
        Get affiliate account by referral code.

        Args:
            referral_code: Referral code
            include_archived: Also return archived accounts

        Returns:
            Affiliate account or None
        """
        stmt = select(AffiliateAccount).where(
            AffiliateAccount.referral_code == referral_code
        )
        if not include_archived:
            stmt = stmt.where(AffiliateAccount.is_archived.is_(False))
        stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is already issued."""
        return await self.exists(referral_code=referral_code)

    async def list_active(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[AffiliateAccount]:
        """
        List non-archived affiliates, newest first.

        Args:
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            List of affiliate accounts
        """
        return await self.find_by(
            limit=limit, offset=offset, newest_first=True, is_archived=False
        )

    async def count_active(self) -> int:
        """Count non-archived affiliates."""
        stmt = select(func.count(AffiliateAccount.id)).where(
            AffiliateAccount.is_archived.is_(False)
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0
