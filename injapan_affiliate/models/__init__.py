"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.affiliate_commission import AffiliateCommission
from injapan_affiliate.models.affiliate_payout import AffiliatePayout
from injapan_affiliate.models.affiliate_settings import AffiliateSettings
from injapan_affiliate.models.base import Base
from injapan_affiliate.models.enums import (
    CommissionStatus,
    OrderStatus,
    PayoutStatus,
    ReferralStatus,
)
from injapan_affiliate.models.order import Order
from injapan_affiliate.models.referral_event import ReferralEvent

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionStatus",
    "OrderStatus",
    "PayoutStatus",
    "ReferralStatus",
    # Affiliate program
    "AffiliateAccount",
    "AffiliateCommission",
    "AffiliatePayout",
    "AffiliateSettings",
    "ReferralEvent",
    # Storefront
    "Order",
]
