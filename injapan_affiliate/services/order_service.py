"""
Order service.

Persists storefront orders and attributes them to affiliates.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.constants import OPERATION_FAILED_MESSAGE
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.enums import OrderStatus
from injapan_affiliate.models.order import Order
from injapan_affiliate.repositories.order_repository import OrderRepository
from injapan_affiliate.services.base_service import BaseService
from injapan_affiliate.services.referral.order_attributor import (
    OrderAttributor,
)
from injapan_affiliate.utils.exceptions import AffiliateError
from injapan_affiliate.validators.common import validate_amount


class OrderService(BaseService):
    """Order placement service."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize order service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.order_repo = OrderRepository(session)
        self.attributor = OrderAttributor(session)

    async def place_order(
        self,
        user_id: str,
        total: Decimal | int | str,
        visitor_id: str | None = None,
        referral_code: str | None = None,
        now: datetime | None = None,
    ) -> tuple[Order | None, str | None]:
        """
        Place an order and attribute it.

        Attribution runs in a savepoint: if it fails the failure is logged
        and the order is still committed without attribution.

        Args:
            user_id: Buyer's identity-provider user id
            total: Order total
            visitor_id: Buyer's visitor id
            referral_code: Active referral code, if any
            now: Moment of the order (default: current time)

        Returns:
            Tuple of (order, error_message)
        """
        is_valid, order_total, error = validate_amount(total)
        if not is_valid:
            return None, error

        try:
            order = await self.order_repo.create(
                user_id=user_id,
                visitor_id=visitor_id,
                total=order_total,
                status=OrderStatus.PENDING.value,
            )

            commission = await self._attribute(order, referral_code, now)

            await self.session.commit()
            await self.session.refresh(order)

            self.logger.info(
                "Order placed",
                extra={
                    "order_id": order.id,
                    "user_id": user_id,
                    "total": str(order_total),
                    "commission_id": commission.id if commission else None,
                },
            )
            return order, None

        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to place order",
                extra={"user_id": user_id, "error": str(e)},
                exc_info=True,
            )
            return None, OPERATION_FAILED_MESSAGE

    async def _attribute(
        self, order: Order, referral_code: str | None, now: datetime | None
    ) -> AffiliateCommission | None:
        """Run attribution in a savepoint; log and drop failures."""
        order_id = order.id
        try:
            async with self.session.begin_nested():
                return await self.attributor.attribute_order(
                    order, referral_code, now
                )
        except (SQLAlchemyError, AffiliateError, ValueError) as e:
            self.logger.warning(
                "Order attribution failed, order kept unattributed",
                extra={
                    "order_id": order_id,
                    "referral_code": referral_code,
                    "error": str(e),
                },
            )
            return None

    async def get_orders(self, user_id: str) -> list[Order]:
        """Get orders of a user, newest first."""
        return await self.order_repo.get_by_user(user_id)
