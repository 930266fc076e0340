"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from injapan_affiliate.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)

# Core Services
from injapan_affiliate.services.affiliate_service import (
    AffiliateService,
    generate_referral_code,
)
from injapan_affiliate.services.commission import (
    CommissionService,
    PayoutService,
)
from injapan_affiliate.services.order_service import OrderService
from injapan_affiliate.services.referral import (
    AffiliateStatistics,
    ClickTracker,
    OrderAttributor,
    ReferralCodeResolver,
    RegistrationAttributor,
)
from injapan_affiliate.services.referral.referral_flow import ReferralFlow


__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    # Affiliate program
    "AffiliateService",
    "generate_referral_code",
    "CommissionService",
    "PayoutService",
    # Referral tracking
    "AffiliateStatistics",
    "ClickTracker",
    "OrderAttributor",
    "ReferralCodeResolver",
    "RegistrationAttributor",
    "ReferralFlow",
    # Orders
    "OrderService",
]
