"""
Order model.

Minimal order record carrying referral attribution.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from injapan_affiliate.models.base import Base, TimestampMixin
from injapan_affiliate.models.enums import OrderStatus
from injapan_affiliate.models.types import MoneyType


class Order(TimestampMixin, Base):
    """Storefront order."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint('total >= 0', name='check_order_total_non_negative'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True
    )
    visitor_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )  # guest referral tracking
    total: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Attribution (set by the order attributor)
    affiliate_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliates.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Order(id={self.id}, user_id={self.user_id!r}, total={self.total}, "
            f"affiliate_id={self.affiliate_id})>"
        )
