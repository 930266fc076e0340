"""
Payout repository.

Data access layer for AffiliatePayout model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.affiliate_payout import AffiliatePayout
from injapan_affiliate.models.enums import PayoutStatus
from injapan_affiliate.repositories.base import BaseRepository


class PayoutRepository(BaseRepository[AffiliatePayout]):
    """Payout repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payout repository."""
        super().__init__(AffiliatePayout, session)

    async def get_by_affiliate(
        self, affiliate_id: int
    ) -> list[AffiliatePayout]:
        """
        Get payouts of an affiliate, most recently requested first.

        Args:
            affiliate_id: Affiliate id

        Returns:
            List of payouts
        """
        stmt = (
            select(AffiliatePayout)
            .where(AffiliatePayout.affiliate_id == affiliate_id)
            .order_by(
                AffiliatePayout.requested_at.desc(), AffiliatePayout.id.desc()
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(
        self, status: str | None = None
    ) -> list[AffiliatePayout]:
        """
        Get all payouts (admin), most recently requested first.

        Args:
            status: Optional status filter

        Returns:
            List of payouts
        """
        stmt = select(AffiliatePayout).order_by(
            AffiliatePayout.requested_at.desc(), AffiliatePayout.id.desc()
        )
        if status:
            stmt = stmt.where(AffiliatePayout.status == status)
        stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_totals_by_status(self) -> dict[str, Decimal]:
        """
        Sum payout amounts grouped by status.

        Returns:
            Dict mapping status to total amount (all statuses present)
        """
        stmt = select(
            AffiliatePayout.status,
            func.coalesce(
                func.sum(AffiliatePayout.amount), Decimal("0")
            ).label("total"),
        ).group_by(AffiliatePayout.status)

        result = await self.session.execute(stmt)

        totals = {status.value: Decimal("0") for status in PayoutStatus}
        for row in result.all():
            totals[row.status] = Decimal(str(row.total))
        return totals
