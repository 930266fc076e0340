"""
Affiliate commission model.

One commission per attributed order; amount fixed at creation.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.enums import CommissionStatus
from injapan_affiliate.models.types import MoneyType, PercentType


class AffiliateCommission(TimestampMixin, Base):
    """Affiliate commission - pending -> approved|rejected, approved -> paid."""

    __tablename__ = "affiliate_commissions"
    __table_args__ = (
        CheckConstraint(
            'commission_amount >= 0',
            name='check_commission_amount_non_negative'
        ),
        CheckConstraint(
            'order_total >= 0', name='check_commission_order_total_non_negative'
        ),
        Index('idx_commission_affiliate_status', 'affiliate_id', 'status'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # References (by key, not containment)
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    referral_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliate_referrals.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    order_id: Mapped[int] = mapped_column(
        nullable=False, unique=True, index=True
    )
    payout_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliate_payouts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )  # payout claiming this commission

    # Amounts
    order_total: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )  # rate in effect when the order was placed
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value,
        index=True,
    )

    # Audit
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateCommission(id={self.id}, order_id={self.order_id}, "
            f"amount={self.commission_amount}, status={self.status!r})>"
        )
