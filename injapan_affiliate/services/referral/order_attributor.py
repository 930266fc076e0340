"""
Order attribution.

Attaches a placed order to the affiliate whose code brought the buyer and
creates the pending commission for it.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.settings import settings
from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.enums import CommissionStatus, ReferralStatus
from injapan_affiliate.models.order import Order
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.affiliate_settings_repository import (
    AffiliateSettingsRepository,
)
from injapan_affiliate.repositories.commission_repository import (
    CommissionRepository,
)
from injapan_affiliate.repositories.order_repository import OrderRepository
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.base_service import BaseService
from injapan_affiliate.services.commission.calculator import (
    compute_commission,
    resolve_rate,
)
from injapan_affiliate.services.commission.state_machine import (
    can_transition_referral,
    referral_sources,
)
from injapan_affiliate.utils.datetime_utils import utc_now


class OrderAttributor(BaseService):
    """
    Attributes orders to affiliates.

    Does not commit: runs inside the caller's order transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize order attributor.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.order_repo = OrderRepository(session)
        self.settings_repo = AffiliateSettingsRepository(session)

    async def attribute_order(
        self,
        order: Order,
        referral_code: str | None = None,
        now: datetime | None = None,
    ) -> AffiliateCommission | None:
        """
        Attribute an order and create its pending commission.

        Without a code the buyer's most recent referral inside the
        attribution window is used. Unknown or archived affiliates and
        self-referrals are not attributed. Attributing the same order again
        returns the existing commission.

        Args:
            order: Persisted order
            referral_code: Active referral code, if any
            now: Moment of the order (default: current time)

        Returns:
            Commission or None if the order is not attributed
        """
        now = now or utc_now()
        order_id = order.id
        existing = await self.commission_repo.get_by_order_id(order_id)
        if existing:
            return existing

        code = referral_code or order.referral_code
        if not code:
            latest = await self.referral_repo.get_latest_for_user(
                order.user_id,
                since=now - timedelta(days=settings.referral_window_days),
            )
            code = latest.referral_code if latest else None
        if not code:
            return None

        affiliate = await self.affiliate_repo.get_by_referral_code(code)
        if not affiliate:
            self.logger.info(
                "Order referral code has no active affiliate",
                extra={"order_id": order.id, "referral_code": code},
            )
            return None

        if affiliate.user_id == order.user_id:
            self.logger.debug(
                "Self-referral order ignored",
                extra={"order_id": order.id, "referral_code": code},
            )
            return None

        try:
            async with self.session.begin_nested():
                commission = await self._attribute(
                    order, code, affiliate, now
                )
        except IntegrityError:
            # Same order attributed concurrently
            commission = await self.commission_repo.get_by_order_id(order_id)
            if commission is None:
                raise
            return commission

        self.logger.info(
            "Order attributed",
            extra={
                "order_id": order_id,
                "affiliate_id": affiliate.id,
                "commission_id": commission.id,
                "commission_amount": str(commission.commission_amount),
            },
        )
        return commission

    async def _attribute(
        self,
        order: Order,
        code: str,
        affiliate: AffiliateAccount,
        now: datetime,
    ) -> AffiliateCommission:
        program = await self.settings_repo.get_settings()
        rate = resolve_rate(affiliate, program)
        order_total = Decimal(str(order.total))
        amount = compute_commission(
            order_total, rate, settings.currency_quantum
        )

        event = await self.referral_repo.find_for_order_attribution(
            code, order.user_id, order.visitor_id
        )
        if event is None:
            event = await self.referral_repo.create(
                referral_code=code,
                referrer_id=affiliate.id,
                referred_user_id=order.user_id,
                status=ReferralStatus.ORDERED.value,
                ordered_at=now,
                order_id=order.id,
                order_total=order_total,
                commission_amount=amount,
            )
        elif can_transition_referral(event.status, ReferralStatus.ORDERED):
            values: dict = {
                "status": ReferralStatus.ORDERED.value,
                "ordered_at": now,
                "order_id": order.id,
                "order_total": order_total,
                "commission_amount": amount,
            }
            if event.referred_user_id is None:
                values["referred_user_id"] = order.user_id
            await self.referral_repo.transition(
                event.id, referral_sources(ReferralStatus.ORDERED), **values
            )
        # Repeat orders leave an already advanced event where it is

        commission = await self.commission_repo.create(
            affiliate_id=affiliate.id,
            referral_id=event.id,
            order_id=order.id,
            order_total=order_total,
            commission_rate=rate,
            commission_amount=amount,
            status=CommissionStatus.PENDING.value,
        )

        await self.order_repo.update(
            order.id, affiliate_id=affiliate.id, referral_code=code
        )
        await self.affiliate_repo.increment(
            affiliate.id, total_commission=amount, pending_commission=amount
        )
        return commission
