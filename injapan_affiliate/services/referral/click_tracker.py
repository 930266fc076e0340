"""
Click tracking.

Records one click event per (referral code, visitor). Tracking is
best-effort: failures are logged and never reach the visitor.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.enums import ReferralStatus
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.base_service import BaseService
from injapan_affiliate.utils.datetime_utils import utc_now
from injapan_affiliate.utils.exceptions import MUST_LOG, SAFE_TO_IGNORE


class ClickTracker(BaseService):
    """Records referral link clicks."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize click tracker.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)

    async def record_click(
        self, referral_code: str, visitor_id: str
    ) -> int | None:
        """
        Record a click for (code, visitor).

        A repeat click of the same visitor returns the existing event and
        leaves total_clicks unchanged.

        Args:
            referral_code: Referral code from the landing URL
            visitor_id: Visitor id

        Returns:
            Referral event id, or None if nothing was recorded
        """
        try:
            affiliate = await self.affiliate_repo.get_by_referral_code(
                referral_code
            )
            if not affiliate:
                self.logger.warning(
                    "Click for unknown referral code",
                    extra={"referral_code": referral_code},
                )
                return None

            existing = await self.referral_repo.get_by_visitor(
                referral_code, visitor_id
            )
            if existing:
                return existing.id

            try:
                async with self.session.begin_nested():
                    event = await self.referral_repo.create(
                        referral_code=referral_code,
                        referrer_id=affiliate.id,
                        visitor_id=visitor_id,
                        status=ReferralStatus.CLICKED.value,
                        clicked_at=utc_now(),
                    )
            except IntegrityError:
                # Same visitor clicked concurrently; the other insert won
                winner = await self.referral_repo.get_by_visitor(
                    referral_code, visitor_id
                )
                await self.session.commit()
                return winner.id if winner else None

            await self.affiliate_repo.increment(affiliate.id, total_clicks=1)
            await self.session.commit()

            self.logger.info(
                "Referral click recorded",
                extra={
                    "referral_id": event.id,
                    "affiliate_id": affiliate.id,
                    "visitor_id": visitor_id,
                },
            )
            return event.id

        except (*MUST_LOG, *SAFE_TO_IGNORE) as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to record referral click",
                extra={
                    "referral_code": referral_code,
                    "visitor_id": visitor_id,
                    "error": str(e),
                },
            )
            return None
