"""
Status enums for the affiliate pipeline.

Values are stored as plain strings in status columns.
"""

from enum import StrEnum


class ReferralStatus(StrEnum):
    """Referral event status."""

    PENDING = "pending"
    CLICKED = "clicked"
    REGISTERED = "registered"
    ORDERED = "ordered"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    PURCHASED = "purchased"  # informational, never a transition target


class CommissionStatus(StrEnum):
    """Affiliate commission status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class PayoutStatus(StrEnum):
    """Affiliate payout status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class OrderStatus(StrEnum):
    """Order status (subset used by attribution)."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Referral statuses that mean the visitor became a follower (registered user)
FOLLOWER_STATUSES = (
    ReferralStatus.REGISTERED,
    ReferralStatus.ORDERED,
    ReferralStatus.APPROVED,
    ReferralStatus.PAID,
    ReferralStatus.PURCHASED,
)

# Referral statuses a registration may claim
CLAIMABLE_STATUSES = (ReferralStatus.PENDING, ReferralStatus.CLICKED)

# Payouts still holding their commissions
OPEN_PAYOUT_STATUSES = (PayoutStatus.PENDING, PayoutStatus.PROCESSING)
