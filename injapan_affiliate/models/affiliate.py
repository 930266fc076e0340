"""
Affiliate account model.

One account per user who joined the affiliate program.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.types import JsonType, MoneyType, PercentType


class AffiliateAccount(TimestampMixin, Base):
    """Affiliate account - referral code owner with cumulative counters."""

    __tablename__ = "affiliates"
    __table_args__ = (
        CheckConstraint(
            'total_clicks >= 0', name='check_affiliate_clicks_non_negative'
        ),
        CheckConstraint(
            'total_referrals >= 0',
            name='check_affiliate_referrals_non_negative'
        ),
        CheckConstraint(
            'pending_commission >= 0',
            name='check_affiliate_pending_non_negative'
        ),
        CheckConstraint(
            'approved_commission >= 0',
            name='check_affiliate_approved_non_negative'
        ),
        CheckConstraint(
            'paid_commission >= 0',
            name='check_affiliate_paid_non_negative'
        ),
        CheckConstraint(
            'commission_rate IS NULL OR '
            '(commission_rate >= 0 AND commission_rate <= 100)',
            name='check_affiliate_rate_range'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner (identity-provider user id)
    user_id: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    display_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )

    # Immutable once issued
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )

    # Affiliate-specific rate override (percent); None -> program default
    commission_rate: Mapped[Decimal | None] = mapped_column(
        PercentType, nullable=True
    )

    # Counters (only changed through atomic increments)
    total_clicks: Mapped[int] = mapped_column(default=0, nullable=False)
    total_referrals: Mapped[int] = mapped_column(default=0, nullable=False)
    total_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    pending_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )  # awaiting admin review
    approved_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )  # approved, not yet paid
    paid_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Payout destination: {"bank_name", "account_number", "account_name"}
    bank_info: Mapped[dict[str, Any] | None] = mapped_column(
        JsonType, nullable=True
    )

    # Soft archival (accounts are never deleted)
    is_archived: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateAccount(id={self.id}, user_id={self.user_id!r}, "
            f"referral_code={self.referral_code!r})>"
        )
