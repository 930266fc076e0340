"""
Commission review service.

Admin approval and rejection of pending commissions.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.constants import OPERATION_FAILED_MESSAGE
from injapan_affiliate.identity.provider import Identity
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.enums import CommissionStatus, ReferralStatus
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.commission_repository import (
    CommissionRepository,
)
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.base_service import (
    BaseService,
    log_operation,
)
from injapan_affiliate.services.commission.state_machine import (
    commission_sources,
    ensure_commission_transition,
    referral_sources,
)
from injapan_affiliate.utils.datetime_utils import utc_now
from injapan_affiliate.utils.exceptions import ConsistencyError, SecurityError


class CommissionService(BaseService):
    """
    Commission review service.

    Moves commissions out of ``pending`` and keeps the affiliate's balance
    counters and the referral event in step with the commission status.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize commission service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.commission_repo = CommissionRepository(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)

    async def get_commission(
        self, commission_id: int
    ) -> AffiliateCommission | None:
        """Get commission by id."""
        return await self.commission_repo.get_by_id(commission_id)

    @log_operation
    async def approve_commission(
        self, commission_id: int, actor: Identity | None
    ) -> tuple[bool, str | None]:
        """
        Approve a pending commission (admin only).

        Pending balance moves to approved balance.

        Args:
            commission_id: Commission id
            actor: Admin identity

        Returns:
            Tuple of (success, error_message)
        """
        return await self._review(
            commission_id, actor, CommissionStatus.APPROVED, None
        )

    @log_operation
    async def reject_commission(
        self,
        commission_id: int,
        actor: Identity | None,
        reason: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Reject a pending commission (admin only).

        The amount leaves both the pending balance and the lifetime total.

        Args:
            commission_id: Commission id
            actor: Admin identity
            reason: Optional note stored on the commission

        Returns:
            Tuple of (success, error_message)
        """
        return await self._review(
            commission_id, actor, CommissionStatus.REJECTED, reason
        )

    async def _review(
        self,
        commission_id: int,
        actor: Identity | None,
        target: CommissionStatus,
        notes: str | None,
    ) -> tuple[bool, str | None]:
        action = f"commission_{target.value}"
        try:
            self.require_admin(actor, action)

            commission = await self.commission_repo.get_by_id(commission_id)
            if not commission:
                return False, "Commission not found"

            ensure_commission_transition(commission.status, target)

            now = utc_now()
            values: dict = {"status": target.value}
            if target == CommissionStatus.APPROVED:
                values.update(approved_at=now, approved_by=actor.id)
            else:
                values.update(rejected_at=now, rejected_by=actor.id)
            if notes:
                values["notes"] = notes

            moved = await self.commission_repo.transition(
                commission_id, commission_sources(target), **values
            )
            if not moved:
                raise ConsistencyError(
                    f"Commission {commission_id} changed concurrently"
                )

            amount = Decimal(str(commission.commission_amount))
            if target == CommissionStatus.APPROVED:
                deltas = {
                    "pending_commission": -amount,
                    "approved_commission": amount,
                }
            else:
                deltas = {
                    "pending_commission": -amount,
                    "total_commission": -amount,
                }
            if not await self.affiliate_repo.increment(
                commission.affiliate_id, **deltas
            ):
                raise ConsistencyError(
                    f"Affiliate {commission.affiliate_id} not found"
                )

            if commission.referral_id:
                await self._mirror_referral(
                    commission.referral_id, target, actor.id, now
                )

            await self.session.commit()

            self.logger.info(
                f"Commission {target.value}",
                extra={
                    "commission_id": commission_id,
                    "affiliate_id": commission.affiliate_id,
                    "amount": str(amount),
                    "admin_id": actor.id,
                },
            )
            return True, None

        except SecurityError as e:
            return False, str(e)
        except ConsistencyError as e:
            await self.session.rollback()
            self.logger.error(
                "Commission review rejected by consistency check",
                extra={
                    "commission_id": commission_id,
                    "target": target.value,
                    "error": str(e),
                },
            )
            return False, OPERATION_FAILED_MESSAGE
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to review commission",
                extra={
                    "commission_id": commission_id,
                    "target": target.value,
                    "error": str(e),
                },
                exc_info=True,
            )
            return False, OPERATION_FAILED_MESSAGE

    async def _mirror_referral(
        self,
        referral_id: int,
        target: CommissionStatus,
        actor_id: str,
        now: datetime,
    ) -> None:
        """Advance the referral event to the commission's new status."""
        if target == CommissionStatus.APPROVED:
            status = ReferralStatus.APPROVED
            values = {"approved_at": now, "approved_by": actor_id}
        else:
            status = ReferralStatus.REJECTED
            values = {"rejected_at": now, "rejected_by": actor_id}

        moved = await self.referral_repo.transition(
            referral_id,
            referral_sources(status),
            status=status.value,
            **values,
        )
        if not moved:
            # Shared by several orders; an earlier commission already moved it
            self.logger.debug(
                "Referral event not advanced",
                extra={"referral_id": referral_id, "target": status.value},
            )
