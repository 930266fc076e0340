"""
Referral event model.

One row per attribution touchpoint: click, registration, order.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.enums import ReferralStatus
from injapan_affiliate.models.types import MoneyType


class ReferralEvent(TimestampMixin, Base):
    """Referral event - status moves forward only."""

    __tablename__ = "affiliate_referrals"
    __table_args__ = (
        UniqueConstraint(
            'referral_code', 'visitor_id',
            name='uq_referral_code_visitor'
        ),
        UniqueConstraint(
            'referral_code', 'referred_user_id',
            name='uq_referral_code_referred_user'
        ),
        Index('idx_referral_referrer_status', 'referrer_id', 'status'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Attribution source
    referral_code: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("affiliates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Pre-auth visitor / post-auth user
    visitor_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )
    referred_user_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True
    )
    referred_user_email: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    referred_user_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Order data
    order_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    order_total: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    commission_amount: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralStatus.CLICKED.value,
        index=True,
    )  # pending, clicked, registered, ordered, approved, rejected, paid, purchased

    # Status timestamps
    clicked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    registered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ordered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Admin actors
    approved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralEvent(id={self.id}, code={self.referral_code!r}, "
            f"status={self.status!r})>"
        )
