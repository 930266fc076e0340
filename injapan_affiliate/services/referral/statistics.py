"""
Affiliate statistics module.

Dashboard figures for affiliates and for the program as a whole:
counters, followers, totals by status and month-by-month activity.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.enums import FOLLOWER_STATUSES
from injapan_affiliate.models.order import Order
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.commission_repository import (
    CommissionRepository,
)
from injapan_affiliate.repositories.payout_repository import PayoutRepository
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.utils.datetime_utils import month_key, utc_now


def conversion_rate(clicks: int, referrals: int) -> float:
    """Referrals per hundred clicks, 0 when there are no clicks."""
    if clicks <= 0:
        return 0.0
    return round(referrals / clicks * 100, 2)


def month_starts(now: datetime, months: int) -> list[datetime]:
    """First moments of the last ``months`` months, oldest first."""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(
            now.replace(
                year=year, month=month, day=1,
                hour=0, minute=0, second=0, microsecond=0,
            )
        )
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


class AffiliateStatistics:
    """Affiliate and program statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics."""
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.payout_repo = PayoutRepository(session)

    async def get_affiliate_stats(self, affiliate_id: int) -> dict | None:
        """
        Get dashboard statistics of an affiliate.

        Args:
            affiliate_id: Affiliate id

        Returns:
            Dict with counters, order count, balance and conversion rate,
            or None if the affiliate does not exist
        """
        affiliate = await self.affiliate_repo.get_by_id(affiliate_id)
        if not affiliate:
            return None

        total_orders = await self.commission_repo.count_orders(affiliate_id)
        available = await self.commission_repo.get_available_balance(
            affiliate_id
        )

        return {
            "referral_code": affiliate.referral_code,
            "total_clicks": affiliate.total_clicks,
            "total_referrals": affiliate.total_referrals,
            "total_orders": total_orders,
            "total_commission": Decimal(str(affiliate.total_commission)),
            "pending_commission": Decimal(str(affiliate.pending_commission)),
            "approved_commission": Decimal(
                str(affiliate.approved_commission)
            ),
            "paid_commission": Decimal(str(affiliate.paid_commission)),
            "available_balance": available,
            "conversion_rate": conversion_rate(
                affiliate.total_clicks, affiliate.total_referrals
            ),
        }

    async def get_followers(self, affiliate_id: int) -> list[dict]:
        """
        Get users who registered through an affiliate.

        One entry per referred user (their most recent event), with the
        number and value of their attributed orders.

        Args:
            affiliate_id: Affiliate id

        Returns:
            List of follower dicts, most recent first
        """
        events = await self.referral_repo.get_by_referrer(
            affiliate_id, FOLLOWER_STATUSES
        )

        followers: dict[str, ReferralEvent] = {}
        for event in events:
            if event.referred_user_id and (
                event.referred_user_id not in followers
            ):
                followers[event.referred_user_id] = event

        if not followers:
            return []

        stmt = (
            select(
                Order.user_id,
                func.count(Order.id).label("order_count"),
                func.coalesce(func.sum(Order.total), 0).label("total_spent"),
            )
            .where(
                Order.affiliate_id == affiliate_id,
                Order.user_id.in_(list(followers)),
            )
            .group_by(Order.user_id)
        )
        result = await self.session.execute(stmt)
        orders = {row.user_id: row for row in result.all()}

        items = []
        for user_id, event in followers.items():
            row = orders.get(user_id)
            items.append({
                "user_id": user_id,
                "email": event.referred_user_email,
                "name": event.referred_user_name,
                "status": event.status,
                "joined_at": event.registered_at or event.created_at,
                "order_count": row.order_count if row else 0,
                "total_spent": (
                    Decimal(str(row.total_spent)) if row else Decimal("0")
                ),
            })
        return items

    async def get_program_overview(self) -> dict:
        """
        Get program-wide totals for the admin dashboard.

        Returns:
            Dict with affiliate count, click/referral sums and commission
            and payout totals by status
        """
        stmt = select(
            func.coalesce(func.sum(AffiliateAccount.total_clicks), 0),
            func.coalesce(func.sum(AffiliateAccount.total_referrals), 0),
        )
        clicks, referrals = (await self.session.execute(stmt)).one()

        return {
            "active_affiliates": await self.affiliate_repo.count_active(),
            "total_clicks": int(clicks),
            "total_referrals": int(referrals),
            "conversion_rate": conversion_rate(int(clicks), int(referrals)),
            "commissions": await self.commission_repo.get_totals_by_status(),
            "payouts": await self.payout_repo.get_totals_by_status(),
        }

    async def get_monthly_stats(
        self, affiliate_id: int | None = None, months: int = 6
    ) -> list[dict]:
        """
        Get month-by-month activity.

        Args:
            affiliate_id: Restrict to one affiliate (None = whole program)
            months: Number of months including the current one

        Returns:
            List of dicts keyed by ``month`` (YYYY-MM), oldest first
        """
        starts = month_starts(utc_now(), max(months, 1))
        cutoff = starts[0]
        buckets = {
            month_key(start): {
                "month": month_key(start),
                "clicks": 0,
                "referrals": 0,
                "orders": 0,
                "commission": Decimal("0"),
            }
            for start in starts
        }

        event_stmt = select(
            ReferralEvent.clicked_at, ReferralEvent.registered_at
        ).where(
            or_(
                ReferralEvent.clicked_at >= cutoff,
                ReferralEvent.registered_at >= cutoff,
            )
        )
        if affiliate_id is not None:
            event_stmt = event_stmt.where(
                ReferralEvent.referrer_id == affiliate_id
            )
        for clicked_at, registered_at in (
            await self.session.execute(event_stmt)
        ).all():
            if clicked_at and month_key(clicked_at) in buckets:
                buckets[month_key(clicked_at)]["clicks"] += 1
            if registered_at and month_key(registered_at) in buckets:
                buckets[month_key(registered_at)]["referrals"] += 1

        commission_stmt = select(
            AffiliateCommission.created_at,
            AffiliateCommission.commission_amount,
        ).where(AffiliateCommission.created_at >= cutoff)
        if affiliate_id is not None:
            commission_stmt = commission_stmt.where(
                AffiliateCommission.affiliate_id == affiliate_id
            )
        for created_at, amount in (
            await self.session.execute(commission_stmt)
        ).all():
            bucket = buckets.get(month_key(created_at))
            if bucket:
                bucket["orders"] += 1
                bucket["commission"] += Decimal(str(amount))

        return list(buckets.values())
