"""
Registration attribution.

Binds a newly signed-in user to the affiliate whose code they arrived
with. Each (code, user) pair is attributed exactly once.
"""

from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.models.enums import ReferralStatus
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.base_service import BaseService
from injapan_affiliate.utils.datetime_utils import utc_now
from injapan_affiliate.utils.exceptions import MUST_LOG


class RegistrationAttributor(BaseService):
    """Attributes user registrations to referral codes."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize registration attributor.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)

    async def attribute_registration(
        self,
        referral_code: str,
        user_id: str,
        email: str = "",
        display_name: str = "",
        visitor_id: str | None = None,
    ) -> ReferralEvent | None:
        """
        Attribute a user to a referral code.

        Claims the visitor's (or the most recent) unclaimed click for the
        code, or creates a registered event when there is none, and counts
        one referral. Calling again for the same user returns the same
        event without counting again.

        Args:
            referral_code: Active referral code
            user_id: Identity-provider user id
            email: User e-mail
            display_name: User display name
            visitor_id: Visitor id of the browser that signed in

        Returns:
            Registered referral event, or None if not attributed
        """
        try:
            affiliate = await self.affiliate_repo.get_by_referral_code(
                referral_code
            )
            if not affiliate:
                self.logger.info(
                    "Registration with unknown referral code",
                    extra={"referral_code": referral_code, "user_id": user_id},
                )
                return None

            if affiliate.user_id == user_id:
                self.logger.debug(
                    "Self-referral ignored",
                    extra={"referral_code": referral_code, "user_id": user_id},
                )
                return None

            existing = await self.referral_repo.get_by_referred_user(
                referral_code, user_id
            )
            if existing:
                return existing

            now = utc_now()
            try:
                async with self.session.begin_nested():
                    event_id = await self._claim_click(
                        referral_code, user_id, email, display_name,
                        visitor_id, now,
                    )
                    if event_id is None:
                        event = await self.referral_repo.create(
                            referral_code=referral_code,
                            referrer_id=affiliate.id,
                            referred_user_id=user_id,
                            referred_user_email=email,
                            referred_user_name=display_name,
                            status=ReferralStatus.REGISTERED.value,
                            registered_at=now,
                        )
                        event_id = event.id

                    await self.affiliate_repo.increment(
                        affiliate.id, total_referrals=1
                    )
            except IntegrityError:
                # Concurrent attribution of the same user won
                winner = await self.referral_repo.get_by_referred_user(
                    referral_code, user_id
                )
                self.logger.info(
                    "Duplicate registration attribution resolved",
                    extra={"referral_code": referral_code, "user_id": user_id},
                )
                return winner

            await self.session.commit()

            event = await self.referral_repo.get_by_id(event_id)
            await self.session.refresh(event)

            self.logger.info(
                "Registration attributed",
                extra={
                    "referral_id": event_id,
                    "affiliate_id": affiliate.id,
                    "user_id": user_id,
                },
            )
            return event

        except MUST_LOG as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to attribute registration",
                extra={
                    "referral_code": referral_code,
                    "user_id": user_id,
                    "error": str(e),
                },
            )
            return None

    async def _claim_click(
        self,
        referral_code: str,
        user_id: str,
        email: str,
        display_name: str,
        visitor_id: str | None,
        registered_at: datetime,
    ) -> int | None:
        """Claim the best unclaimed click for the user; return its id."""
        for candidate in await self.referral_repo.find_claimable(
            referral_code, visitor_id
        ):
            if await self.referral_repo.claim_for_user(
                candidate.id, user_id, email, display_name, registered_at
            ):
                return candidate.id
        return None
