"""
Referral services package.

Contains:
- code_resolver: Referral code capture and attribution window
- click_tracker: Click recording
- registration_attributor: Registration attribution
- order_attributor: Order attribution and commission creation
- statistics: Dashboard statistics
- referral_flow: Visit / sign-in / order orchestration (exported from
  injapan_affiliate.services)
"""

from injapan_affiliate.services.referral.click_tracker import ClickTracker
from injapan_affiliate.services.referral.code_resolver import (
    ReferralCodeResolver,
)
from injapan_affiliate.services.referral.order_attributor import (
    OrderAttributor,
)
from injapan_affiliate.services.referral.registration_attributor import (
    RegistrationAttributor,
)
from injapan_affiliate.services.referral.statistics import (
    AffiliateStatistics,
)


__all__ = [
    "AffiliateStatistics",
    "ClickTracker",
    "OrderAttributor",
    "ReferralCodeResolver",
    "RegistrationAttributor",
]
