"""
Unit tests for best-effort click tracking.

Database failures are logged and reported as "nothing recorded".
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from injapan_affiliate.services.referral.click_tracker import ClickTracker


class TestClickTrackerFailures:
    """Test click tracking failure handling."""

    @pytest.mark.asyncio
    async def test_database_error_returns_none(self, mock_session):
        """Operational errors roll back and return None."""
        mock_session.execute = AsyncMock(
            side_effect=OperationalError("stmt", {}, Exception("boom"))
        )

        result = await ClickTracker(mock_session).record_click(
            "JOHX7Q7F3K", "visitor_1_abc"
        )

        assert result is None
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_code_returns_none(self, mock_session):
        """Unknown codes are ignored without writing."""
        tracker = ClickTracker(mock_session)
        tracker.affiliate_repo.get_by_referral_code = AsyncMock(
            return_value=None
        )
        tracker.referral_repo.create = AsyncMock()

        result = await tracker.record_click("NOPE", "visitor_1_abc")

        assert result is None
        tracker.referral_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_repeat_click_returns_existing(self, mock_session):
        """An existing event for the visitor is reused."""
        tracker = ClickTracker(mock_session)
        tracker.affiliate_repo.get_by_referral_code = AsyncMock(
            return_value=MagicMock(id=7)
        )
        tracker.referral_repo.get_by_visitor = AsyncMock(
            return_value=MagicMock(id=55)
        )
        tracker.affiliate_repo.increment = AsyncMock()

        result = await tracker.record_click("JOHX7Q7F3K", "visitor_1_abc")

        assert result == 55
        tracker.affiliate_repo.increment.assert_not_awaited()
