"""
Unit tests for status transition rules.

Tests cover:
- Referral event forward-only progression
- Commission and payout transition tables
- Validation helpers raising ConsistencyError
"""

import pytest

from injapan_affiliate.models.enums import (
    CommissionStatus,
    PayoutStatus,
    ReferralStatus,
)
from injapan_affiliate.services.commission.state_machine import (
    REFERRAL_RANK,
    can_transition_commission,
    can_transition_payout,
    can_transition_referral,
    commission_sources,
    ensure_commission_transition,
    ensure_payout_transition,
    payout_sources,
    referral_sources,
)
from injapan_affiliate.utils.exceptions import ConsistencyError


class TestReferralTransitions:
    """Test referral event status progression."""

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "clicked"),
            ("clicked", "registered"),
            ("clicked", "ordered"),
            ("registered", "ordered"),
            ("ordered", "approved"),
            ("ordered", "rejected"),
            ("approved", "paid"),
            ("purchased", "approved"),
        ],
    )
    def test_forward_moves_allowed(self, current, target):
        """Moves to a higher rank are allowed."""
        assert can_transition_referral(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            ("registered", "clicked"),
            ("ordered", "registered"),
            ("approved", "ordered"),
            ("ordered", "ordered"),
            ("approved", "rejected"),
        ],
    )
    def test_regression_and_same_rank_rejected(self, current, target):
        """Status never moves back or sideways."""
        assert can_transition_referral(current, target) is False

    def test_every_regression_rejected(self):
        """No move to a lower rank is ever allowed."""
        for current in ReferralStatus:
            for target in ReferralStatus:
                if REFERRAL_RANK[target] < REFERRAL_RANK[current]:
                    assert not can_transition_referral(current, target)

    @pytest.mark.parametrize("terminal", ["rejected", "paid"])
    def test_terminal_statuses(self, terminal):
        """Rejected and paid events never change again."""
        for target in ReferralStatus:
            assert can_transition_referral(terminal, target) is False

    def test_paid_only_from_approved(self):
        """Only approved events can become paid."""
        assert referral_sources(ReferralStatus.PAID) == ("approved",)

    def test_purchased_never_a_target(self):
        """Purchased is informational only."""
        assert referral_sources(ReferralStatus.PURCHASED) == ()

    def test_unknown_status_raises(self):
        """Unknown status names are rejected loudly."""
        with pytest.raises(ValueError):
            can_transition_referral("clicked", "shipped")


class TestCommissionTransitions:
    """Test commission transition table."""

    def test_pending_to_approved_or_rejected(self):
        """Pending commissions can be approved or rejected."""
        assert can_transition_commission("pending", "approved")
        assert can_transition_commission("pending", "rejected")

    def test_approved_to_paid(self):
        """Approved commissions can be paid."""
        assert can_transition_commission("approved", "paid")

    @pytest.mark.parametrize(
        "current,target",
        [
            ("rejected", "approved"),
            ("approved", "rejected"),
            ("paid", "approved"),
            ("pending", "paid"),
            ("approved", "pending"),
        ],
    )
    def test_invalid_moves(self, current, target):
        """Everything outside the table is rejected."""
        assert can_transition_commission(current, target) is False

    def test_sources(self):
        """Source statuses are derived from the table."""
        assert commission_sources(CommissionStatus.APPROVED) == ("pending",)
        assert commission_sources(CommissionStatus.PAID) == ("approved",)

    def test_ensure_raises(self):
        """Re-approving a rejected commission is a consistency error."""
        with pytest.raises(ConsistencyError):
            ensure_commission_transition("rejected", "approved")

        ensure_commission_transition("pending", "approved")


class TestPayoutTransitions:
    """Test payout transition table."""

    def test_happy_path(self):
        """pending -> processing -> completed."""
        assert can_transition_payout("pending", "processing")
        assert can_transition_payout("processing", "completed")

    def test_rejection_only_from_pending(self):
        """Only pending payouts can be rejected."""
        assert can_transition_payout("pending", "rejected")
        assert not can_transition_payout("processing", "rejected")
        assert payout_sources(PayoutStatus.REJECTED) == ("pending",)

    def test_completed_requires_processing(self):
        """Pending payouts cannot jump to completed."""
        assert not can_transition_payout("pending", "completed")
        with pytest.raises(ConsistencyError):
            ensure_payout_transition("pending", "completed")

    def test_completed_is_terminal(self):
        """Completed payouts never change."""
        for target in PayoutStatus:
            assert not can_transition_payout("completed", target)
