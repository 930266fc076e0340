"""
Referral event repository.

Data access layer for ReferralEvent model.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.enums import CLAIMABLE_STATUSES, ReferralStatus
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.repositories.base import BaseRepository
from injapan_affiliate.utils.datetime_utils import utc_now


class ReferralEventRepository(BaseRepository[ReferralEvent]):
    """Referral event repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral event repository."""
        super().__init__(ReferralEvent, session)

    async def get_by_visitor(
        self, referral_code: str, visitor_id: str
    ) -> ReferralEvent | None:
        """
        Get click event for (code, visitor).

        Args:
            referral_code: Referral code
            visitor_id: Visitor id

        Returns:
            Referral event or None
        """
        return await self.get_by(
            referral_code=referral_code, visitor_id=visitor_id
        )

    async def get_by_referred_user(
        self, referral_code: str, referred_user_id: str
    ) -> ReferralEvent | None:
        """
        Get event binding a referred user to a code.

        Args:
            referral_code: Referral code
            referred_user_id: Referred user id

        Returns:
            Referral event or None
        """
        return await self.get_by(
            referral_code=referral_code, referred_user_id=referred_user_id
        )

    async def get_latest_for_user(
        self, referred_user_id: str, since: datetime | None = None
    ) -> ReferralEvent | None:
        """
        Get most recent event for a referred user (any code).

        Args:
            referred_user_id: Referred user id
            since: Ignore events created before this moment

        Returns:
            Most recent referral event or None
        """
        stmt = select(ReferralEvent).where(
            ReferralEvent.referred_user_id == referred_user_id
        )
        if since is not None:
            stmt = stmt.where(ReferralEvent.created_at >= since)
        stmt = (
            stmt.order_by(
                ReferralEvent.created_at.desc(), ReferralEvent.id.desc()
            )
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_claimable(
        self, referral_code: str, visitor_id: str | None = None
    ) -> list[ReferralEvent]:
        """
        Find unclaimed clicked/pending events for a code.

        Events of the given visitor come first, then most recent first.

        Args:
            referral_code: Referral code
            visitor_id: Preferred visitor id

        Returns:
            List of claimable events
        """
        stmt = select(ReferralEvent).where(
            ReferralEvent.referral_code == referral_code,
            ReferralEvent.referred_user_id.is_(None),
            ReferralEvent.status.in_([s.value for s in CLAIMABLE_STATUSES]),
        )
        if visitor_id:
            stmt = stmt.order_by(
                (ReferralEvent.visitor_id == visitor_id).desc(),
                ReferralEvent.created_at.desc(),
                ReferralEvent.id.desc(),
            )
        else:
            stmt = stmt.order_by(
                ReferralEvent.created_at.desc(), ReferralEvent.id.desc()
            )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim_for_user(
        self,
        event_id: int,
        referred_user_id: str,
        email: str,
        display_name: str,
        registered_at: datetime,
    ) -> bool:
        """
        Bind an unclaimed event to a user and mark it registered.

        The update only applies while the event is still unclaimed, so two
        registrations can never take the same click.

        Returns:
            True if the event was claimed
        """
        stmt = (
            update(ReferralEvent)
            .where(
                ReferralEvent.id == event_id,
                ReferralEvent.referred_user_id.is_(None),
                ReferralEvent.status.in_(
                    [s.value for s in CLAIMABLE_STATUSES]
                ),
            )
            .values(
                referred_user_id=referred_user_id,
                referred_user_email=email,
                referred_user_name=display_name,
                status=ReferralStatus.REGISTERED.value,
                registered_at=registered_at,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def find_for_order_attribution(
        self, referral_code: str, user_id: str, visitor_id: str | None
    ) -> ReferralEvent | None:
        """
        Find the event an order should be attached to.

        Preference: the user's own event for the code, then the visitor's
        unclaimed click.

        Returns:
            Referral event or None
        """
        event = await self.get_by_referred_user(referral_code, user_id)
        if event:
            return event

        if visitor_id:
            event = await self.get_by_visitor(referral_code, visitor_id)
            if event and event.referred_user_id in (None, user_id):
                return event

        return None

    async def get_by_referrer(
        self,
        referrer_id: int,
        statuses: tuple[str, ...] | None = None,
    ) -> list[ReferralEvent]:
        """
        Get events of an affiliate, newest first.

        Args:
            referrer_id: Affiliate id
            statuses: Optional status filter

        Returns:
            List of referral events
        """
        stmt = select(ReferralEvent).where(
            ReferralEvent.referrer_id == referrer_id
        )
        if statuses:
            stmt = stmt.where(
                ReferralEvent.status.in_([str(s) for s in statuses])
            )
        stmt = stmt.order_by(
            ReferralEvent.created_at.desc(), ReferralEvent.id.desc()
        ).execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
