"""
Commission services package.

Contains:
- calculator: Commission amount and rate resolution
- state_machine: Allowed status transitions
- commission_service: Admin review of commissions
- payout_service: Payout requests and processing
"""

from injapan_affiliate.services.commission.calculator import (
    compute_commission,
    resolve_rate,
)
from injapan_affiliate.services.commission.commission_service import (
    CommissionService,
)
from injapan_affiliate.services.commission.payout_service import (
    PayoutService,
)
from injapan_affiliate.services.commission.state_machine import (
    can_transition_commission,
    can_transition_payout,
    can_transition_referral,
    ensure_commission_transition,
    ensure_payout_transition,
)


__all__ = [
    # Calculation
    "compute_commission",
    "resolve_rate",
    # Transitions
    "can_transition_commission",
    "can_transition_payout",
    "can_transition_referral",
    "ensure_commission_transition",
    "ensure_payout_transition",
    # Services
    "CommissionService",
    "PayoutService",
]
