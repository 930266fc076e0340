"""
End-to-end tests of the storefront referral flow.

Landing visit -> sign-up -> order, with in-memory visitor storage and a
mocked identity provider SDK.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from injapan_affiliate.identity.provider import Identity, IdentityAdapter
from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.enums import ReferralStatus
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.repositories.referral_event_repository import (
    ReferralEventRepository,
)
from injapan_affiliate.services import ReferralFlow
from injapan_affiliate.services.referral.code_resolver import (
    ReferralCodeResolver,
)
from injapan_affiliate.services.referral.referral_flow import (
    SIGN_IN_REQUIRED_MESSAGE,
)
from injapan_affiliate.storage.key_value import MemoryKeyValueStore

LANDING_URL = "https://injapan-food.test/products/matcha?ref=johx7q7f3k"
NEW_USER = Identity(id="user-0043", email="ken@example.com", display_name="Ken")


class FrozenClock:
    """Settable clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    """Clock starting now."""
    return FrozenClock(datetime.now(UTC))


@pytest.fixture
def backend():
    """Identity provider SDK that signs everyone in as NEW_USER."""
    sdk = AsyncMock()
    sdk.sign_up = AsyncMock(return_value=NEW_USER)
    sdk.sign_in = AsyncMock(return_value=NEW_USER)
    return sdk


@pytest.fixture
def flow(session_maker, backend, clock):
    """Referral flow of one visitor."""
    resolver = ReferralCodeResolver(MemoryKeyValueStore(), clock=clock)
    referral_flow = ReferralFlow(
        resolver, IdentityAdapter(backend), session_maker
    )
    yield referral_flow
    referral_flow.close()


class TestReferralFlow:
    """Test the visitor lifecycle."""

    @pytest.mark.asyncio
    async def test_visit_signup_order(self, flow, make_affiliate, reload):
        """A referred visitor who signs up and orders earns a commission."""
        affiliate = await make_affiliate()

        click_id = await flow.process_visit(LANDING_URL)
        await flow.identity.sign_up("ken@example.com", "secret", "Ken")
        order, error = await flow.place_order(Decimal("8000"))

        assert click_id is not None
        assert error is None
        assert order.affiliate_id == affiliate.id

        event = await reload(ReferralEvent, click_id)
        assert event.referred_user_id == NEW_USER.id
        assert event.referred_user_name == "Ken"
        assert event.status == ReferralStatus.ORDERED.value
        assert event.order_id == order.id
        assert event.commission_amount == Decimal("400")

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_clicks == 1
        assert stored.total_referrals == 1
        assert stored.pending_commission == Decimal("400")

    @pytest.mark.asyncio
    async def test_signed_in_visitor_attributed_on_visit(
        self, session_maker, backend, make_affiliate, reload
    ):
        """Visiting a link while signed in attributes immediately."""
        affiliate = await make_affiliate()
        signed_in = ReferralFlow(
            ReferralCodeResolver(MemoryKeyValueStore()),
            IdentityAdapter(backend, current=NEW_USER),
            session_maker,
        )

        click_id = await signed_in.process_visit(LANDING_URL)
        signed_in.close()

        event = await reload(ReferralEvent, click_id)
        assert event.status == ReferralStatus.REGISTERED.value
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 1

    @pytest.mark.asyncio
    async def test_expired_code_not_attributed(
        self, flow, clock, make_affiliate, reload
    ):
        """Signing up after the window leaves the click unclaimed."""
        affiliate = await make_affiliate()

        click_id = await flow.process_visit(LANDING_URL)
        clock.now += timedelta(days=30, milliseconds=1)
        await flow.identity.sign_in("ken@example.com", "secret")
        order, _ = await flow.place_order(10000)

        assert order.affiliate_id is None
        event = await reload(ReferralEvent, click_id)
        assert event.status == ReferralStatus.CLICKED.value
        assert event.referred_user_id is None
        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 0

    @pytest.mark.asyncio
    async def test_order_after_window_not_attributed(
        self, flow, clock, make_affiliate, reload
    ):
        """Signing up inside the window does not attribute later orders."""
        affiliate = await make_affiliate()

        click_id = await flow.process_visit(LANDING_URL)
        await flow.identity.sign_up("ken@example.com", "secret", "Ken")
        clock.now += timedelta(days=400)
        order, error = await flow.place_order(10000)

        assert await flow.resolver.active_code() is None
        assert error is None
        assert order.affiliate_id is None
        assert order.referral_code is None

        event = await reload(ReferralEvent, click_id)
        assert event.status == ReferralStatus.REGISTERED.value
        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_referrals == 1
        assert stored.pending_commission == Decimal("0")

    @pytest.mark.asyncio
    async def test_order_inside_window_uses_earlier_signup(
        self, flow, clock, make_affiliate
    ):
        """A later order inside the window is still attributed."""
        affiliate = await make_affiliate()

        await flow.process_visit(LANDING_URL)
        await flow.identity.sign_up("ken@example.com", "secret", "Ken")
        clock.now += timedelta(days=20)
        order, _ = await flow.place_order(10000)

        assert order.affiliate_id == affiliate.id

    @pytest.mark.asyncio
    async def test_visit_without_code(self, flow, make_affiliate):
        """Plain visits track nothing."""
        await make_affiliate()

        assert await flow.process_visit("https://injapan-food.test/") is None
        assert await flow.resolver.stored_code() is None

    @pytest.mark.asyncio
    async def test_order_requires_sign_in(self, flow):
        """Guests cannot place orders."""
        assert await flow.place_order(1000) == (None, SIGN_IN_REQUIRED_MESSAGE)

    @pytest.mark.asyncio
    async def test_closed_flow_ignores_sign_in(
        self, flow, make_affiliate, reload
    ):
        """After close, sign-ins are no longer attributed."""
        affiliate = await make_affiliate()
        await flow.process_visit(LANDING_URL)

        flow.close()
        await flow.identity.sign_up("ken@example.com", "secret", "Ken")

        assert (await reload(AffiliateAccount, affiliate.id)).total_referrals == 0

    @pytest.mark.asyncio
    async def test_storage_outage_does_not_break_visit(
        self, session_maker, backend
    ):
        """Visitor storage errors are logged, not raised."""
        storage = MemoryKeyValueStore()
        storage.set = AsyncMock(side_effect=RedisConnectionError("down"))
        broken = ReferralFlow(
            ReferralCodeResolver(storage), IdentityAdapter(backend),
            session_maker,
        )

        assert await broken.process_visit(LANDING_URL) is None
        broken.close()

    @pytest.mark.asyncio
    async def test_click_failure_does_not_block_signup_or_order(
        self, flow, make_affiliate, reload
    ):
        """A failed click record still lets the visitor sign up and order."""
        affiliate = await make_affiliate()

        with patch.object(
            ReferralEventRepository,
            "get_by_visitor",
            AsyncMock(
                side_effect=OperationalError("stmt", {}, Exception("down"))
            ),
        ):
            click_id = await flow.process_visit(LANDING_URL)

        await flow.identity.sign_up("ken@example.com", "secret", "Ken")
        order, error = await flow.place_order(10000)

        assert click_id is None
        assert error is None
        assert order.affiliate_id == affiliate.id

        stored = await reload(AffiliateAccount, affiliate.id)
        assert stored.total_clicks == 0
        assert stored.total_referrals == 1
        assert stored.pending_commission == Decimal("500")
