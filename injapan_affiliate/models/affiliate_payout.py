"""
Affiliate payout model.

One row per payout request; funded by whole approved commissions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.enums import PayoutStatus
from injapan_affiliate.models.types import JsonType, MoneyType


class AffiliatePayout(TimestampMixin, Base):
    """Affiliate payout - pending -> processing -> completed, pending -> rejected."""

    __tablename__ = "affiliate_payouts"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_payout_amount_positive'),
        CheckConstraint(
            'amount <= requested_amount',
            name='check_payout_amount_not_exceeds_requested'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Amounts
    requested_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )  # sum of the commissions funding this payout

    # Destination
    method: Mapped[str] = mapped_column(String(100), nullable=False)
    bank_info: Mapped[dict[str, Any] | None] = mapped_column(
        JsonType, nullable=True
    )  # snapshot at request time

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PayoutStatus.PENDING.value,
        index=True,
    )

    # Audit
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    processed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliatePayout(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"amount={self.amount}, status={self.status!r})>"
        )
