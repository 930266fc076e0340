"""
Commission repository.

Data access layer for AffiliateCommission model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.enums import CommissionStatus
from injapan_affiliate.repositories.base import BaseRepository
from injapan_affiliate.utils.datetime_utils import utc_now


class CommissionRepository(BaseRepository[AffiliateCommission]):
    """Commission repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(AffiliateCommission, session)

    async def get_by_order_id(
        self, order_id: int
    ) -> AffiliateCommission | None:
        """
        Get commission created for an order.

        Args:
            order_id: Order id

        Returns:
            Commission or None
        """
        return await self.get_by(order_id=order_id)

    async def get_unclaimed_approved(
        self, affiliate_id: int, for_update: bool = False
    ) -> list[AffiliateCommission]:
        """
        Get approved commissions not yet claimed by a payout, oldest first.

        Args:
            affiliate_id: Affiliate id
            for_update: Lock the rows

        Returns:
            List of commissions
        """
        stmt = (
            select(AffiliateCommission)
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.status == CommissionStatus.APPROVED.value,
                AffiliateCommission.payout_id.is_(None),
            )
            .order_by(
                AffiliateCommission.created_at, AffiliateCommission.id
            )
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_available_balance(self, affiliate_id: int) -> Decimal:
        """
        Sum approved commissions not claimed by any payout.

        Args:
            affiliate_id: Affiliate id

        Returns:
            Available payout balance
        """
        stmt = select(
            func.coalesce(
                func.sum(AffiliateCommission.commission_amount), Decimal("0")
            )
        ).where(
            AffiliateCommission.affiliate_id == affiliate_id,
            AffiliateCommission.status == CommissionStatus.APPROVED.value,
            AffiliateCommission.payout_id.is_(None),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def claim_for_payout(
        self, commission_ids: list[int], payout_id: int
    ) -> int:
        """
        Attach approved, unclaimed commissions to a payout.

        Returns:
            Number of commissions claimed (caller compares with len(ids))
        """
        if not commission_ids:
            return 0

        stmt = (
            update(AffiliateCommission)
            .where(
                AffiliateCommission.id.in_(commission_ids),
                AffiliateCommission.status == CommissionStatus.APPROVED.value,
                AffiliateCommission.payout_id.is_(None),
            )
            .values(payout_id=payout_id, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def release_payout(self, payout_id: int) -> int:
        """
        Detach still-approved commissions from a payout.

        Returns:
            Number of commissions released
        """
        stmt = (
            update(AffiliateCommission)
            .where(
                AffiliateCommission.payout_id == payout_id,
                AffiliateCommission.status == CommissionStatus.APPROVED.value,
            )
            .values(payout_id=None, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_by_payout(
        self, payout_id: int
    ) -> list[AffiliateCommission]:
        """Get commissions funding a payout."""
        stmt = (
            select(AffiliateCommission)
            .where(AffiliateCommission.payout_id == payout_id)
            .order_by(AffiliateCommission.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_paid_for_payout(
        self, payout_id: int, commission_ids: list[int], actor_id: str,
        paid_at: datetime,
    ) -> int:
        """
        Mark the approved commissions of a payout as paid.

        Returns:
            Number of commissions marked paid
        """
        if not commission_ids:
            return 0

        stmt = (
            update(AffiliateCommission)
            .where(
                AffiliateCommission.id.in_(commission_ids),
                AffiliateCommission.payout_id == payout_id,
                AffiliateCommission.status == CommissionStatus.APPROVED.value,
            )
            .values(
                status=CommissionStatus.PAID.value,
                paid_at=paid_at,
                paid_by=actor_id,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_by_affiliate(
        self, affiliate_id: int, status: str | None = None
    ) -> list[AffiliateCommission]:
        """
        Get commissions of an affiliate, newest first.

        Args:
            affiliate_id: Affiliate id
            status: Optional status filter

        Returns:
            List of commissions
        """
        filters: dict = {"affiliate_id": affiliate_id}
        if status:
            filters["status"] = status
        return await self.find_by(newest_first=True, **filters)

    async def get_totals_by_status(
        self, affiliate_id: int | None = None
    ) -> dict[str, Decimal]:
        """
        Sum commission amounts grouped by status in a single query.

        Args:
            affiliate_id: Restrict to one affiliate (None = whole program)

        Returns:
            Dict mapping status to total amount (all statuses present)
        """
        stmt = select(
            AffiliateCommission.status,
            func.coalesce(
                func.sum(AffiliateCommission.commission_amount), Decimal("0")
            ).label("total"),
        ).group_by(AffiliateCommission.status)
        if affiliate_id is not None:
            stmt = stmt.where(AffiliateCommission.affiliate_id == affiliate_id)

        result = await self.session.execute(stmt)

        totals = {status.value: Decimal("0") for status in CommissionStatus}
        for row in result.all():
            totals[row.status] = Decimal(str(row.total))
        return totals

    async def count_orders(self, affiliate_id: int) -> int:
        """Count attributed orders (commissions) of an affiliate."""
        return await self.count(affiliate_id=affiliate_id)
