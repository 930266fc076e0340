"""
Status transition tables.

Explicit forward-only transition rules for referral events, commissions
and payouts. Services validate every status change against these tables
instead of trusting caller discipline.
"""

from injapan_affiliate.models.enums import (
    CommissionStatus,
    PayoutStatus,
    ReferralStatus,
)
from injapan_affiliate.utils.exceptions import ConsistencyError

# Position of each referral status along the natural progression.
# ordered/purchased and approved/rejected share a rank.
REFERRAL_RANK: dict[ReferralStatus, int] = {
    ReferralStatus.PENDING: 0,
    ReferralStatus.CLICKED: 1,
    ReferralStatus.REGISTERED: 2,
    ReferralStatus.ORDERED: 3,
    ReferralStatus.PURCHASED: 3,
    ReferralStatus.APPROVED: 4,
    ReferralStatus.REJECTED: 4,
    ReferralStatus.PAID: 5,
}

REFERRAL_TERMINAL = frozenset({ReferralStatus.REJECTED, ReferralStatus.PAID})

COMMISSION_TRANSITIONS: dict[CommissionStatus, frozenset[CommissionStatus]] = {
    CommissionStatus.PENDING: frozenset(
        {CommissionStatus.APPROVED, CommissionStatus.REJECTED}
    ),
    CommissionStatus.APPROVED: frozenset({CommissionStatus.PAID}),
    CommissionStatus.REJECTED: frozenset(),
    CommissionStatus.PAID: frozenset(),
}

PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset(
        {PayoutStatus.PROCESSING, PayoutStatus.REJECTED}
    ),
    PayoutStatus.PROCESSING: frozenset({PayoutStatus.COMPLETED}),
    PayoutStatus.COMPLETED: frozenset(),
    PayoutStatus.REJECTED: frozenset(),
}


def can_transition_referral(current: str, target: str) -> bool:
    """
    Check a referral event status change.

    Rules:
    - status only moves forward (strictly higher rank)
    - rejected and paid are terminal
    - paid is only reachable from approved
    - purchased is informational and never a target

    Args:
        current: Current status
        target: Requested status

    Returns:
        True if the change is allowed
    """
    current_status = ReferralStatus(current)
    target_status = ReferralStatus(target)

    if current_status in REFERRAL_TERMINAL:
        return False
    if target_status == ReferralStatus.PURCHASED:
        return False
    if target_status == ReferralStatus.PAID:
        return current_status == ReferralStatus.APPROVED
    return REFERRAL_RANK[target_status] > REFERRAL_RANK[current_status]


def can_transition_commission(current: str, target: str) -> bool:
    """Check a commission status change."""
    return CommissionStatus(target) in COMMISSION_TRANSITIONS[
        CommissionStatus(current)
    ]


def can_transition_payout(current: str, target: str) -> bool:
    """Check a payout status change."""
    return PayoutStatus(target) in PAYOUT_TRANSITIONS[PayoutStatus(current)]


def referral_sources(target: str) -> tuple[str, ...]:
    """All referral statuses from which target is reachable."""
    return tuple(
        status.value
        for status in ReferralStatus
        if can_transition_referral(status, target)
    )


def commission_sources(target: str) -> tuple[str, ...]:
    """All commission statuses from which target is reachable."""
    return tuple(
        status.value
        for status, targets in COMMISSION_TRANSITIONS.items()
        if CommissionStatus(target) in targets
    )


def payout_sources(target: str) -> tuple[str, ...]:
    """All payout statuses from which target is reachable."""
    return tuple(
        status.value
        for status, targets in PAYOUT_TRANSITIONS.items()
        if PayoutStatus(target) in targets
    )


def ensure_commission_transition(current: str, target: str) -> None:
    """
    Validate commission transition.

    Raises:
        ConsistencyError: If the transition is not allowed
    """
    if not can_transition_commission(current, target):
        raise ConsistencyError(
            f"Commission cannot move from {current} to {target}"
        )


def ensure_payout_transition(current: str, target: str) -> None:
    """
    Validate payout transition.

    Raises:
        ConsistencyError: If the transition is not allowed
    """
    if not can_transition_payout(current, target):
        raise ConsistencyError(
            f"Payout cannot move from {current} to {target}"
        )
