"""
Integration tests for click, registration and order attribution.

Runs against a SQLite database with the full schema.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.enums import CommissionStatus, ReferralStatus
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.repositories.commission_repository import (
    CommissionRepository,
)
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services.order_service import OrderService
from injapan_affiliate.services.referral.click_tracker import ClickTracker
from injapan_affiliate.services.referral.registration_attributor import (
    RegistrationAttributor,
)
from injapan_affiliate.utils.datetime_utils import utc_now

CODE = "JOHX7Q7F3K"
BUYER = "user-0042"


class TestClickTracking:
    """Test click recording."""

    @pytest.mark.asyncio
    async def test_records_click_once_per_visitor(
        self, session, make_affiliate, reload
    ):
        """Repeat clicks of a visitor reuse the event and count once."""
        affiliate = await make_affiliate()
        tracker = ClickTracker(session)

        first = await tracker.record_click(CODE, "visitor_1_abc")
        second = await tracker.record_click(CODE, "visitor_1_abc")
        other = await tracker.record_click(CODE, "visitor_2_xyz")

        assert first is not None
        assert first == second
        assert other != first

        event = await reload(ReferralEvent, first)
        assert event.status == ReferralStatus.CLICKED.value
        assert event.referrer_id == affiliate.id
        assert event.clicked_at is not None

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_clicks == 2

    @pytest.mark.asyncio
    async def test_unknown_code(self, session, make_affiliate):
        """Codes without an affiliate record nothing."""
        await make_affiliate()

        assert await ClickTracker(session).record_click(
            "NOSUCHCODE", "visitor_1_abc"
        ) is None

    @pytest.mark.asyncio
    async def test_archived_affiliate(self, session, make_affiliate, reload):
        """Archived affiliates stop collecting clicks."""
        affiliate = await make_affiliate(is_archived=True)

        assert await ClickTracker(session).record_click(
            CODE, "visitor_1_abc"
        ) is None
        assert (await reload(AffiliateAccount, affiliate.id)).total_clicks == 0


class TestRegistrationAttribution:
    """Test registration attribution."""

    @pytest.mark.asyncio
    async def test_claims_visitor_click(self, session, make_affiliate, reload):
        """The visitor's click becomes the registered event."""
        affiliate = await make_affiliate()
        click_id = await ClickTracker(session).record_click(
            CODE, "visitor_1_abc"
        )

        event = await RegistrationAttributor(session).attribute_registration(
            CODE, BUYER, "hana@example.com", "Hana", "visitor_1_abc"
        )

        assert event.id == click_id
        assert event.status == ReferralStatus.REGISTERED.value
        assert event.referred_user_id == BUYER
        assert event.referred_user_email == "hana@example.com"
        assert event.registered_at is not None

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_clicks == 1
        assert stored.total_referrals == 1

    @pytest.mark.asyncio
    async def test_without_click_creates_event(
        self, session, make_affiliate, reload
    ):
        """No unclaimed click: a registered event is created."""
        affiliate = await make_affiliate()

        event = await RegistrationAttributor(session).attribute_registration(
            CODE, BUYER, "hana@example.com", "Hana"
        )

        assert event.status == ReferralStatus.REGISTERED.value
        assert event.visitor_id is None
        assert event.referrer_id == affiliate.id
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, session, make_affiliate, reload):
        """Attributing the same user twice counts once."""
        affiliate = await make_affiliate()
        attributor = RegistrationAttributor(session)

        first = await attributor.attribute_registration(CODE, BUYER)
        second = await attributor.attribute_registration(CODE, BUYER)

        assert first.id == second.id
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 1

    @pytest.mark.asyncio
    async def test_concurrent_attribution_counts_once(
        self, session, session_maker, make_affiliate, reload
    ):
        """Racing attributions of one user leave one event and one referral."""
        affiliate = await make_affiliate()

        async def register():
            async with session_maker() as own:
                return await RegistrationAttributor(
                    own
                ).attribute_registration(CODE, BUYER)

        results = await asyncio.gather(register(), register())

        assert any(event is not None for event in results)
        events = await ReferralEventRepository(session).get_by_referrer(
            affiliate.id
        )
        assert len(events) == 1
        assert events[0].referred_user_id == BUYER
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 1

    @pytest.mark.asyncio
    async def test_two_users_do_not_share_a_click(
        self, session, make_affiliate
    ):
        """A claimed click is never claimed again."""
        await make_affiliate()
        click_id = await ClickTracker(session).record_click(
            CODE, "visitor_1_abc"
        )
        attributor = RegistrationAttributor(session)

        first = await attributor.attribute_registration(
            CODE, BUYER, visitor_id="visitor_1_abc"
        )
        second = await attributor.attribute_registration(
            CODE, "user-0043", visitor_id="visitor_1_abc"
        )

        assert first.id == click_id
        assert second.id != click_id
        assert second.referred_user_id == "user-0043"

    @pytest.mark.asyncio
    async def test_self_referral_ignored(self, session, make_affiliate, reload):
        """Affiliates cannot refer themselves."""
        affiliate = await make_affiliate()

        event = await RegistrationAttributor(session).attribute_registration(
            CODE, affiliate.user_id
        )

        assert event is None
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 0

    @pytest.mark.asyncio
    async def test_unknown_code(self, session, make_affiliate):
        """Unknown codes are not attributed."""
        await make_affiliate()

        assert await RegistrationAttributor(session).attribute_registration(
            "NOSUCHCODE", BUYER
        ) is None


class TestOrderAttribution:
    """Test order attribution and commission creation."""

    @pytest.mark.asyncio
    async def test_order_creates_pending_commission(
        self, session, make_affiliate, reload, sample_order_total
    ):
        """Commission uses the program default rate (5%)."""
        affiliate = await make_affiliate()

        order, error = await OrderService(session).place_order(
            BUYER, sample_order_total, referral_code=CODE
        )

        assert error is None
        assert order.affiliate_id == affiliate.id
        assert order.referral_code == CODE

        commission = await CommissionRepository(session).get_by_order_id(
            order.id
        )
        assert commission.status == CommissionStatus.PENDING.value
        assert commission.commission_amount == Decimal("500")
        assert commission.commission_rate == Decimal("5")
        assert commission.order_total == sample_order_total

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_commission == Decimal("500")
        assert stored.pending_commission == Decimal("500")
        assert stored.approved_commission == Decimal("0")

    @pytest.mark.asyncio
    async def test_registered_event_moves_to_ordered(
        self, session, make_affiliate, reload, sample_order_total
    ):
        """The buyer's registered event records the order."""
        await make_affiliate()
        event = await RegistrationAttributor(session).attribute_registration(
            CODE, BUYER
        )

        order, _ = await OrderService(session).place_order(
            BUYER, sample_order_total, referral_code=CODE
        )

        stored = await reload(ReferralEvent, event.id)
        assert stored.status == ReferralStatus.ORDERED.value
        assert stored.order_id == order.id
        assert stored.commission_amount == Decimal("500")
        assert stored.ordered_at is not None

    @pytest.mark.asyncio
    async def test_repeat_orders_each_earn_commission(
        self, session, make_affiliate, reload
    ):
        """Every attributed order gets its own commission on one event."""
        affiliate = await make_affiliate()
        service = OrderService(session)

        first, _ = await service.place_order(BUYER, 10000, referral_code=CODE)
        second, _ = await service.place_order(BUYER, 3000, referral_code=CODE)

        repo = CommissionRepository(session)
        first_commission = await repo.get_by_order_id(first.id)
        second_commission = await repo.get_by_order_id(second.id)

        assert first_commission.referral_id == second_commission.referral_id
        assert second_commission.commission_amount == Decimal("150")

        event = await reload(ReferralEvent, first_commission.referral_id)
        assert event.order_id == first.id

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.pending_commission == Decimal("650")

    @pytest.mark.asyncio
    async def test_falls_back_to_latest_referral(
        self, session, make_affiliate, sample_order_total
    ):
        """Without a code the buyer's latest referral is used."""
        affiliate = await make_affiliate()
        await RegistrationAttributor(session).attribute_registration(
            CODE, BUYER
        )

        order, _ = await OrderService(session).place_order(
            BUYER, sample_order_total
        )

        assert order.affiliate_id == affiliate.id
        assert order.referral_code == CODE

    @pytest.mark.asyncio
    async def test_fallback_ignores_referrals_outside_window(
        self, session, make_affiliate, sample_order_total
    ):
        """A referral older than the attribution window is not used."""
        await make_affiliate()
        await RegistrationAttributor(session).attribute_registration(
            CODE, BUYER
        )

        order, error = await OrderService(session).place_order(
            BUYER, sample_order_total, now=utc_now() + timedelta(days=31)
        )

        assert error is None
        assert order.affiliate_id is None
        assert await CommissionRepository(session).get_by_order_id(
            order.id
        ) is None

    @pytest.mark.asyncio
    async def test_no_referral_no_commission(
        self, session, make_affiliate, sample_order_total
    ):
        """Orders without any referral are plain orders."""
        await make_affiliate()

        order, error = await OrderService(session).place_order(
            BUYER, sample_order_total
        )

        assert error is None
        assert order.affiliate_id is None
        assert await CommissionRepository(session).get_by_order_id(
            order.id
        ) is None

    @pytest.mark.asyncio
    async def test_self_referral_order(
        self, session, make_affiliate, sample_order_total
    ):
        """Affiliates earn nothing on their own orders."""
        affiliate = await make_affiliate()

        order, _ = await OrderService(session).place_order(
            affiliate.user_id, sample_order_total, referral_code=CODE
        )

        assert order.affiliate_id is None

    @pytest.mark.asyncio
    async def test_archived_affiliate_order(
        self, session, make_affiliate, sample_order_total
    ):
        """Archived affiliates earn nothing."""
        await make_affiliate(is_archived=True)

        order, _ = await OrderService(session).place_order(
            BUYER, sample_order_total, referral_code=CODE
        )

        assert order.affiliate_id is None

    @pytest.mark.asyncio
    async def test_rate_override_is_snapshotted(
        self, session, make_affiliate, sample_order_total
    ):
        """The override rate in effect at order time is stored."""
        affiliate = await make_affiliate(commission_rate=Decimal("12.5"))
        service = OrderService(session)

        order, _ = await service.place_order(
            BUYER, sample_order_total, referral_code=CODE
        )
        stored = await session.get(AffiliateAccount, affiliate.id)
        stored.commission_rate = Decimal("20")
        await session.commit()

        commission = await CommissionRepository(session).get_by_order_id(
            order.id
        )
        assert commission.commission_rate == Decimal("12.5")
        assert commission.commission_amount == Decimal("1250")

    @pytest.mark.asyncio
    async def test_attribution_failure_keeps_order(
        self, session, make_affiliate, sample_order_total
    ):
        """A failing attribution leaves an unattributed order."""
        await make_affiliate()
        service = OrderService(session)
        service.attributor.attribute_order = AsyncMock(
            side_effect=SQLAlchemyError("boom")
        )

        order, error = await service.place_order(
            BUYER, sample_order_total, referral_code=CODE
        )

        assert error is None
        assert order.id is not None
        assert order.affiliate_id is None
        assert len(await service.get_orders(BUYER)) == 1

    @pytest.mark.asyncio
    async def test_invalid_total(self, session):
        """Negative totals are rejected."""
        order, error = await OrderService(session).place_order(BUYER, "-5")

        assert order is None
        assert error == "Amount must be greater than or equal to 0"
