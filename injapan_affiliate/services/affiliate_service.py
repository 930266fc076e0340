"""
Affiliate service.

Affiliate accounts (joining the program, bank details, archival), program
settings and the listings behind the affiliate and admin dashboards.
"""

import secrets
import string
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from injapan_affiliate.config.constants import (
    OPERATION_FAILED_MESSAGE,
    REFERRAL_CODE_GENERATION_ATTEMPTS,
    REFERRAL_CODE_NAME_PREFIX_LENGTH,
    REFERRAL_CODE_RANDOM_LENGTH,
    REFERRAL_CODE_USER_SUFFIX_LENGTH,
    REFERRAL_QUERY_PARAM,
)
from injapan_affiliate.config.settings import settings
from injapan_affiliate.identity.provider import Identity
from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.affiliate_payout import AffiliatePayout
from injapan_affiliate.models.affiliate_settings import AffiliateSettings
from injapan_affiliate.models.referral_event import ReferralEvent
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
from injapan_affiliate.schemas.affiliate import AffiliateSettingsUpdate
from injapan_affiliate.services.base_service import (
    BaseService,
    transaction,
)
from injapan_affiliate.utils.exceptions import SecurityError
from injapan_affiliate.validators.common import validate_bank_info

_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_CODE_PREFIX = "AFF"


def _alnum_upper(value: str) -> str:
    return "".join(
        ch for ch in value.upper() if ch in _CODE_ALPHABET
    )


def generate_referral_code(user_id: str, name: str) -> str:
    """
    Generate a referral code candidate.

    Format: first 3 letters of the name + 3 random characters + last 4
    characters of the user id, upper-case.

    Args:
        user_id: Identity-provider user id
        name: Display name

    Returns:
        Referral code (uniqueness is checked by the caller)

    Examples:
        >>> code = generate_referral_code("uid-8f3a9Q2", "John")
        >>> code[:3], code[-4:]
        ('JOH', 'A9Q2')
    """
    prefix = _alnum_upper(name)[:REFERRAL_CODE_NAME_PREFIX_LENGTH]
    if not prefix:
        prefix = DEFAULT_CODE_PREFIX
    suffix = _alnum_upper(user_id)[-REFERRAL_CODE_USER_SUFFIX_LENGTH:]
    random_part = "".join(
        secrets.choice(_CODE_ALPHABET)
        for _ in range(REFERRAL_CODE_RANDOM_LENGTH)
    )
    return f"{prefix}{random_part}{suffix}"


class AffiliateService(BaseService):
    """Affiliate account and program settings service."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize affiliate service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.affiliate_repo = AffiliateRepository(session)
        self.referral_repo = ReferralEventRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.payout_repo = PayoutRepository(session)
        self.settings_repo = AffiliateSettingsRepository(session)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def issue_referral_code(self, user_id: str, name: str) -> str:
        """
        Generate a referral code not yet used by any affiliate.

        Raises:
            ValueError: If every attempt collided
        """
        for _ in range(REFERRAL_CODE_GENERATION_ATTEMPTS):
            code = generate_referral_code(user_id, name)
            if not await self.affiliate_repo.code_exists(code):
                return code
        raise ValueError(
            f"Could not generate a unique referral code for user {user_id}"
        )

    async def join_program(
        self, identity: Identity
    ) -> tuple[AffiliateAccount | None, str | None]:
        """
        Create the caller's affiliate account or refresh its profile.

        An existing account gets the current e-mail and name; its
        referral code never changes.

        Args:
            identity: Signed-in identity

        Returns:
            Tuple of (affiliate, error_message)
        """
        display_name = identity.name_for_referral
        try:
            existing = await self.affiliate_repo.get_by_user_id(identity.id)
            if existing:
                if existing.is_archived:
                    return None, "Affiliate account is archived"
                affiliate = await self.affiliate_repo.update(
                    existing.id,
                    email=identity.email,
                    display_name=display_name,
                )
                await self.session.commit()
                return affiliate, None

            for attempt in range(REFERRAL_CODE_GENERATION_ATTEMPTS):
                code = await self.issue_referral_code(
                    identity.id, display_name
                )
                try:
                    async with self.session.begin_nested():
                        affiliate = await self.affiliate_repo.create(
                            user_id=identity.id,
                            email=identity.email,
                            display_name=display_name,
                            referral_code=code,
                        )
                    break
                except IntegrityError:
                    # Same user joined concurrently, or the code was taken
                    winner = await self.affiliate_repo.get_by_user_id(
                        identity.id
                    )
                    if winner:
                        return winner, None
                    self.logger.warning(
                        "Referral code collision, retrying",
                        extra={"user_id": identity.id, "attempt": attempt},
                    )
            else:
                raise ValueError("Referral code collisions exhausted retries")

            await self.session.commit()

            self.logger.info(
                "Affiliate joined program",
                extra={
                    "affiliate_id": affiliate.id,
                    "user_id": identity.id,
                    "referral_code": affiliate.referral_code,
                },
            )
            return affiliate, None

        except (SQLAlchemyError, ValueError) as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to join affiliate program",
                extra={"user_id": identity.id, "error": str(e)},
                exc_info=True,
            )
            return None, OPERATION_FAILED_MESSAGE

    async def get_affiliate(self, user_id: str) -> AffiliateAccount | None:
        """Get affiliate account of a user."""
        return await self.affiliate_repo.get_by_user_id(user_id)

    async def get_affiliate_by_id(
        self, affiliate_id: int
    ) -> AffiliateAccount | None:
        """Get affiliate account by id."""
        return await self.affiliate_repo.get_by_id(affiliate_id)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> AffiliateAccount | None:
        """Get active affiliate owning a referral code."""
        return await self.affiliate_repo.get_by_referral_code(referral_code)

    async def update_bank_info(
        self, affiliate_id: int, bank_info: dict[str, Any]
    ) -> tuple[bool, str | None]:
        """
        Set payout bank details.

        Args:
            affiliate_id: Affiliate id
            bank_info: bank_name, account_number, account_name

        Returns:
            Tuple of (success, error_message)
        """
        is_valid, normalized, error = validate_bank_info(bank_info)
        if not is_valid:
            return False, error

        try:
            affiliate = await self.affiliate_repo.update(
                affiliate_id, bank_info=normalized
            )
            if not affiliate:
                return False, "Affiliate not found"
            await self.session.commit()
            return True, None

        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to update bank info",
                extra={"affiliate_id": affiliate_id, "error": str(e)},
                exc_info=True,
            )
            return False, OPERATION_FAILED_MESSAGE

    async def archive_affiliate(
        self, affiliate_id: int, actor: Identity | None
    ) -> tuple[bool, str | None]:
        """
        Archive an affiliate (admin only).

        The account and its history are kept; the code stops attributing.

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self.require_admin(actor, "archive_affiliate")

            affiliate = await self.affiliate_repo.update(
                affiliate_id, is_archived=True
            )
            if not affiliate:
                return False, "Affiliate not found"
            await self.session.commit()

            self.logger.info(
                "Affiliate archived",
                extra={"affiliate_id": affiliate_id, "admin_id": actor.id},
            )
            return True, None

        except SecurityError as e:
            return False, str(e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to archive affiliate",
                extra={"affiliate_id": affiliate_id, "error": str(e)},
                exc_info=True,
            )
            return False, OPERATION_FAILED_MESSAGE

    @staticmethod
    def referral_link(affiliate: AffiliateAccount) -> str:
        """Storefront link carrying the affiliate's code."""
        return (
            f"{settings.site_url.rstrip('/')}/"
            f"?{REFERRAL_QUERY_PARAM}={affiliate.referral_code}"
        )

    # ------------------------------------------------------------------
    # Affiliate dashboard listings
    # ------------------------------------------------------------------

    async def get_referrals(self, affiliate_id: int) -> list[ReferralEvent]:
        """Referral events of an affiliate, newest first."""
        return await self.referral_repo.get_by_referrer(affiliate_id)

    async def get_commissions(
        self, affiliate_id: int, status: str | None = None
    ) -> list[AffiliateCommission]:
        """Commissions of an affiliate, newest first."""
        return await self.commission_repo.get_by_affiliate(
            affiliate_id, status
        )

    async def get_payouts(self, affiliate_id: int) -> list[AffiliatePayout]:
        """Payouts of an affiliate, newest first."""
        return await self.payout_repo.get_by_affiliate(affiliate_id)

    # ------------------------------------------------------------------
    # Admin listings (raise SecurityError for non-admins)
    # ------------------------------------------------------------------

    async def list_affiliates(
        self, actor: Identity | None, page: int = 1, per_page: int = 100
    ) -> tuple[list[AffiliateAccount], int]:
        """Active affiliates, newest first, with total count."""
        self.require_admin(actor, "list_affiliates")
        items = await self.affiliate_repo.list_active(
            limit=per_page, offset=(page - 1) * per_page
        )
        total = await self.affiliate_repo.count_active()
        return items, total

    async def list_commissions(
        self,
        actor: Identity | None,
        status: str | None = None,
        page: int = 1,
        per_page: int = 100,
    ) -> tuple[list[AffiliateCommission], int]:
        """All commissions, newest first, with total count."""
        self.require_admin(actor, "list_commissions")
        filters = {"status": status} if status else {}
        return await self.commission_repo.find_paginated(
            page=page, per_page=per_page, **filters
        )

    async def list_payouts(
        self, actor: Identity | None, status: str | None = None
    ) -> list[AffiliatePayout]:
        """All payouts, most recently requested first."""
        self.require_admin(actor, "list_payouts")
        return await self.payout_repo.get_all(status)

    # ------------------------------------------------------------------
    # Program settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> AffiliateSettings:
        """Program settings (defaults created on first read)."""
        return await self.settings_repo.get_settings()

    @transaction
    async def initialize_settings(self) -> AffiliateSettings:
        """Create the settings row with defaults if missing and commit."""
        return await self.settings_repo.get_settings()

    async def update_settings(
        self, actor: Identity | None, **changes: Any
    ) -> tuple[AffiliateSettings | None, str | None]:
        """
        Update program settings (admin only).

        Args:
            actor: Admin identity
            **changes: default_commission_rate, min_payout_amount,
                payout_methods, terms_and_conditions

        Returns:
            Tuple of (settings, error_message)
        """
        try:
            self.require_admin(actor, "update_settings")
        except SecurityError as e:
            return None, str(e)

        try:
            update = AffiliateSettingsUpdate(**changes)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            return None, f"Invalid {field}: {first['msg']}"

        values = update.model_dump(exclude_none=True)
        if not values:
            return None, "Nothing to update"

        try:
            program = await self.settings_repo.update_settings(**values)
            await self.session.commit()

            self.logger.info(
                "Affiliate settings updated",
                extra={"fields": sorted(values), "admin_id": actor.id},
            )
            return program, None

        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                "Failed to update affiliate settings",
                extra={"error": str(e)},
                exc_info=True,
            )
            return None, OPERATION_FAILED_MESSAGE
