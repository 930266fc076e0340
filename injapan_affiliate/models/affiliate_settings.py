"""
Affiliate settings model.

Singleton row holding program-wide configuration.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.types import JsonType, MoneyType, PercentType


class AffiliateSettings(TimestampMixin, Base):
    """Affiliate program settings (single row, id=1)."""

    __tablename__ = "affiliate_settings"
    __table_args__ = (
        CheckConstraint(
            'default_commission_rate >= 0 AND default_commission_rate <= 100',
            name='check_settings_rate_range'
        ),
        CheckConstraint(
            'min_payout_amount >= 0',
            name='check_settings_min_payout_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    default_commission_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )  # percent, e.g. 5 for 5%
    min_payout_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    payout_methods: Mapped[list[str]] = mapped_column(
        JsonType, nullable=False, default=list
    )
    terms_and_conditions: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateSettings(rate={self.default_commission_rate}, "
            f"min_payout={self.min_payout_amount})>"
        )
