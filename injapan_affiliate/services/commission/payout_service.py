"""
Payout service.

Payout requests by affiliates and their admin processing. A payout is
funded by whole approved commissions, which are claimed when the request
is made and marked paid when the payout completes.
"""

from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.constants import OPERATION_FAILED_MESSAGE
from injapan_affiliate.identity.provider import Identity
from injapan_affiliate.models.affiliate_payout import AffiliatePayout
from injapan_affiliate.models.enums import (
    CommissionStatus,
    PayoutStatus,
    ReferralStatus,
)
from injapan_affiliate.repositories.affiliate_repository import (
    AffiliateRepository,
)
from injapan_affiliate.repositories.affiliate_settings_repository import (
    AffiliateSettingsRepository,
)
from injapan_affiliate.repositories.commission_repository import (
    CommissionRepository,
)
from injapan_affiliate.repositories.payout_repository import PayoutRepository
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.base_service import (
    BaseService,
    log_operation,
)
from injapan_affiliate.services.commission.state_machine import (
    ensure_payout_transition,
    payout_sources,
    referral_sources,
)
from injapan_affiliate.utils.datetime_utils import utc_now
from injapan_affiliate.utils.exceptions import (
    ConsistencyError,
    SecurityError,
    ValidationError,
)
from injapan_affiliate.validators.common import validate_amount


class PayoutService(BaseService):
    """Payout request and processing service."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize payout service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.payout_repo = PayoutRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)
        self.settings_repo = AffiliateSettingsRepository(session)

    async def get_payout(self, payout_id: int) -> AffiliatePayout | None:
        """Get payout by id."""
        return await self.payout_repo.get_by_id(payout_id)

    async def get_available_balance(self, affiliate_id: int) -> Decimal:
        """Approved commission not yet claimed by a payout."""
        return await self.commission_repo.get_available_balance(affiliate_id)

    @log_operation
    async def request_payout(
        self,
        affiliate_id: int,
        amount: Decimal | int | str,
        method: str,
    ) -> tuple[AffiliatePayout | None, str | None]:
        """
        Request a payout of approved commission.

        Approved commissions are claimed oldest first, whole, without
        exceeding the requested amount. The payout amount is the claimed
        total and must still reach the program minimum.

        Args:
            affiliate_id: Affiliate id
            amount: Requested amount
            method: Payout method (must be offered by the program)

        Returns:
            Tuple of (payout, error_message)
        """
        try:
            is_valid, requested, error = validate_amount(amount)
            if not is_valid:
                raise ValidationError(error)
            if requested <= 0:
                raise ValidationError("Amount must be greater than 0")

            program = await self.settings_repo.get_settings()
            min_payout = Decimal(str(program.min_payout_amount))

            if method not in (program.payout_methods or []):
                raise ValidationError(f"Unsupported payout method: {method}")

            if requested < min_payout:
                raise ValidationError(
                    f"Minimum payout amount is {min_payout}"
                )

            affiliate = await self.affiliate_repo.get_by_id(
                affiliate_id, for_update=True
            )
            if not affiliate:
                raise ValidationError("Affiliate not found")
            if affiliate.is_archived:
                raise ValidationError("Affiliate account is archived")
            if not affiliate.bank_info:
                raise ValidationError("Bank information is required")

            commissions = await self.commission_repo.get_unclaimed_approved(
                affiliate_id, for_update=True
            )
            available = sum(
                (Decimal(str(c.commission_amount)) for c in commissions),
                Decimal("0"),
            )
            if requested > available:
                raise ValidationError(
                    f"Insufficient approved balance: available {available}"
                )

            claimed_ids: list[int] = []
            claimed_total = Decimal("0")
            for commission in commissions:
                commission_amount = Decimal(str(commission.commission_amount))
                if claimed_total + commission_amount <= requested:
                    claimed_ids.append(commission.id)
                    claimed_total += commission_amount

            if claimed_total <= 0 or claimed_total < min_payout:
                raise ValidationError(
                    "Approved commissions cannot cover this amount; "
                    f"the nearest payable amount is below {min_payout}"
                )

            payout = await self.payout_repo.create(
                affiliate_id=affiliate_id,
                requested_amount=requested,
                amount=claimed_total,
                method=method,
                bank_info=dict(affiliate.bank_info),
                status=PayoutStatus.PENDING.value,
                requested_at=utc_now(),
            )

            claimed = await self.commission_repo.claim_for_payout(
                claimed_ids, payout.id
            )
            if claimed != len(claimed_ids):
                raise ConsistencyError(
                    f"Claimed {claimed} of {len(claimed_ids)} commissions"
                )

            await self.session.commit()

            self.logger.info(
                "Payout requested",
                extra={
                    "payout_id": payout.id,
                    "affiliate_id": affiliate_id,
                    "requested_amount": str(requested),
                    "amount": str(claimed_total),
                    "commissions": len(claimed_ids),
                    "method": method,
                },
            )
            return payout, None

        except ValidationError as e:
            await self.session.rollback()
            return None, str(e)
        except ConsistencyError as e:
            await self.session.rollback()
            self.logger.error(
                "Payout request rejected by consistency check",
                extra={"affiliate_id": affiliate_id, "error": str(e)},
            )
            return None, OPERATION_FAILED_MESSAGE
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to request payout",
                extra={"affiliate_id": affiliate_id, "error": str(e)},
                exc_info=True,
            )
            return None, OPERATION_FAILED_MESSAGE

    @log_operation
    async def mark_processing(
        self,
        payout_id: int,
        actor: Identity | None,
        notes: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Move a pending payout to processing (admin only).

        Args:
            payout_id: Payout id
            actor: Admin identity
            notes: Optional admin note

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self.require_admin(actor, "payout_processing")

            payout = await self.payout_repo.get_by_id(payout_id)
            if not payout:
                return False, "Payout not found"
            ensure_payout_transition(payout.status, PayoutStatus.PROCESSING)

            values: dict = {
                "status": PayoutStatus.PROCESSING.value,
                "processed_at": utc_now(),
                "processed_by": actor.id,
            }
            if notes:
                values["notes"] = notes

            if not await self.payout_repo.transition(
                payout_id, payout_sources(PayoutStatus.PROCESSING), **values
            ):
                raise ConsistencyError(
                    f"Payout {payout_id} changed concurrently"
                )

            await self.session.commit()

            self.logger.info(
                "Payout processing",
                extra={"payout_id": payout_id, "admin_id": actor.id},
            )
            return True, None

        except SecurityError as e:
            return False, str(e)
        except (ConsistencyError, SQLAlchemyError) as e:
            return await self._failed(payout_id, "processing", e)

    @log_operation
    async def complete_payout(
        self,
        payout_id: int,
        actor: Identity | None,
        notes: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Complete a processing payout (admin only).

        Marks every funding commission and its referral event paid and
        moves the same sum from approved to paid balance, all in one
        transaction. A second completion of the same payout fails without
        any effect.

        Args:
            payout_id: Payout id
            actor: Admin identity
            notes: Optional admin note

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self.require_admin(actor, "payout_completed")

            payout = await self.payout_repo.get_by_id(payout_id)
            if not payout:
                return False, "Payout not found"
            ensure_payout_transition(payout.status, PayoutStatus.COMPLETED)

            now = utc_now()
            values: dict = {
                "status": PayoutStatus.COMPLETED.value,
                "completed_at": now,
                "completed_by": actor.id,
            }
            if notes:
                values["notes"] = notes

            if not await self.payout_repo.transition(
                payout_id, payout_sources(PayoutStatus.COMPLETED), **values
            ):
                raise ConsistencyError(
                    f"Payout {payout_id} already completed or changed"
                )

            commissions = [
                c for c in await self.commission_repo.get_by_payout(payout_id)
                if c.status == CommissionStatus.APPROVED.value
            ]
            commission_ids = [c.id for c in commissions]
            paid_total = sum(
                (Decimal(str(c.commission_amount)) for c in commissions),
                Decimal("0"),
            )

            if paid_total != Decimal(str(payout.amount)):
                raise ConsistencyError(
                    f"Payout {payout_id} amount {payout.amount} does not "
                    f"match funding commissions {paid_total}"
                )

            marked = await self.commission_repo.mark_paid_for_payout(
                payout_id, commission_ids, actor.id, now
            )
            if marked != len(commission_ids):
                raise ConsistencyError(
                    f"Marked {marked} of {len(commission_ids)} commissions paid"
                )

            if not await self.affiliate_repo.increment(
                payout.affiliate_id,
                approved_commission=-paid_total,
                paid_commission=paid_total,
            ):
                raise ConsistencyError(
                    f"Affiliate {payout.affiliate_id} not found"
                )

            referral_ids = sorted(
                {c.referral_id for c in commissions if c.referral_id}
            )
            for referral_id in referral_ids:
                await self.referral_repo.transition(
                    referral_id,
                    referral_sources(ReferralStatus.PAID),
                    status=ReferralStatus.PAID.value,
                    paid_at=now,
                    paid_by=actor.id,
                )

            await self.session.commit()

            self.logger.info(
                "Payout completed",
                extra={
                    "payout_id": payout_id,
                    "affiliate_id": payout.affiliate_id,
                    "amount": str(paid_total),
                    "commissions": len(commission_ids),
                    "admin_id": actor.id,
                },
            )
            return True, None

        except SecurityError as e:
            return False, str(e)
        except (ConsistencyError, SQLAlchemyError) as e:
            return await self._failed(payout_id, "completed", e)

    @log_operation
    async def reject_payout(
        self,
        payout_id: int,
        actor: Identity | None,
        notes: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Reject a pending payout (admin only).

        Claimed commissions are released back to the available balance.

        Args:
            payout_id: Payout id
            actor: Admin identity
            notes: Optional rejection reason

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self.require_admin(actor, "payout_rejected")

            payout = await self.payout_repo.get_by_id(payout_id)
            if not payout:
                return False, "Payout not found"
            ensure_payout_transition(payout.status, PayoutStatus.REJECTED)

            values: dict = {
                "status": PayoutStatus.REJECTED.value,
                "rejected_at": utc_now(),
                "rejected_by": actor.id,
            }
            if notes:
                values["notes"] = notes

            if not await self.payout_repo.transition(
                payout_id, payout_sources(PayoutStatus.REJECTED), **values
            ):
                raise ConsistencyError(
                    f"Payout {payout_id} changed concurrently"
                )

            released = await self.commission_repo.release_payout(payout_id)

            await self.session.commit()

            self.logger.info(
                "Payout rejected",
                extra={
                    "payout_id": payout_id,
                    "released_commissions": released,
                    "admin_id": actor.id,
                },
            )
            return True, None

        except SecurityError as e:
            return False, str(e)
        except (ConsistencyError, SQLAlchemyError) as e:
            return await self._failed(payout_id, "rejected", e)

    async def process_payout(
        self,
        payout_id: int,
        actor: Identity | None,
        status: str,
        notes: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Set a payout status from the admin screen.

        Args:
            payout_id: Payout id
            actor: Admin identity
            status: Target status (processing, completed, rejected)
            notes: Optional admin note

        Returns:
            Tuple of (success, error_message)
        """
        handlers = {
            PayoutStatus.PROCESSING.value: self.mark_processing,
            PayoutStatus.COMPLETED.value: self.complete_payout,
            PayoutStatus.REJECTED.value: self.reject_payout,
        }
        handler = handlers.get(status)
        if handler is None:
            return False, f"Unsupported payout status: {status}"
        return await handler(payout_id, actor, notes)

    async def _failed(
        self, payout_id: int, target: str, error: Exception
    ) -> tuple[bool, str]:
        """Roll back and log a failed payout transition."""
        await self.session.rollback()
        self.logger.error(
            "Payout transition failed",
            extra={
                "payout_id": payout_id,
                "target": target,
                "error": str(error),
            },
            exc_info=isinstance(error, SQLAlchemyError),
        )
        return False, OPERATION_FAILED_MESSAGE
