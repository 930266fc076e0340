"""
Referral flow.

Wires the code resolver, identity adapter and attribution services into
the storefront lifecycle: landing visit, sign-in, order placement.
"""

from collections.abc import Callable
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from injapan_affiliate.identity.provider import Identity, IdentityAdapter
from injapan_affiliate.models.order import Order
from injapan_affiliate.models.referral_event import ReferralEvent
from injapan_affiliate.services.order_service import OrderService
from injapan_affiliate.services.referral.click_tracker import ClickTracker
from injapan_affiliate.services.referral.code_resolver import (
    ReferralCodeResolver,
)
from injapan_affiliate.services.referral.registration_attributor import (
    RegistrationAttributor,
)
from injapan_affiliate.utils.exceptions import SAFE_TO_IGNORE

SIGN_IN_REQUIRED_MESSAGE = "Sign in to place an order"


class ReferralFlow:
    """
    Referral lifecycle of one visitor.

    Subscribes to auth-state changes on creation; call ``close`` to
    unsubscribe.
    """

    def __init__(
        self,
        resolver: ReferralCodeResolver,
        identity: IdentityAdapter,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        """
        Initialize flow.

        Args:
            resolver: Visitor's referral code resolver
            identity: Identity adapter
            session_maker: Factory for database sessions
        """
        self.resolver = resolver
        self.identity = identity
        self.session_maker = session_maker
        self.logger = logger.bind(service=self.__class__.__name__)
        self._unsubscribe: Callable[[], None] | None = (
            identity.on_auth_state_changed(self._on_auth_state_changed)
        )

    def close(self) -> None:
        """Stop listening to auth-state changes."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def process_visit(self, url: str) -> int | None:
        """
        Handle a landing URL.

        Captures the code, records the click and, for a visitor who is
        already signed in, attributes the registration. Never raises for
        tracking failures.

        Args:
            url: Landing URL or query string

        Returns:
            Click event id, or None if nothing was tracked
        """
        try:
            code = await self.resolver.resolve_incoming_code(url)
            if not code:
                return None
            visitor_id = await self.resolver.get_or_create_visitor_id()
        except SAFE_TO_IGNORE as e:
            self.logger.error(
                "Visitor storage unavailable", extra={"error": str(e)}
            )
            return None

        async with self.session_maker() as session:
            event_id = await ClickTracker(session).record_click(
                code, visitor_id
            )

        current = self.identity.current_user()
        if current:
            await self.attribute_registration(current)

        return event_id

    async def attribute_registration(
        self, identity: Identity
    ) -> ReferralEvent | None:
        """
        Attribute a signed-in user to the active referral code.

        Args:
            identity: Signed-in identity

        Returns:
            Referral event, or None without an active code
        """
        try:
            code = await self.resolver.active_code()
            if not code:
                return None
            visitor_id = await self.resolver.get_or_create_visitor_id()
        except SAFE_TO_IGNORE as e:
            self.logger.error(
                "Visitor storage unavailable", extra={"error": str(e)}
            )
            return None

        async with self.session_maker() as session:
            return await RegistrationAttributor(
                session
            ).attribute_registration(
                code,
                identity.id,
                identity.email,
                identity.name_for_referral,
                visitor_id,
            )

    async def place_order(
        self, total: Decimal | int | str
    ) -> tuple[Order | None, str | None]:
        """
        Place an order for the signed-in user.

        Args:
            total: Order total

        Returns:
            Tuple of (order, error_message)
        """
        current = self.identity.current_user()
        if not current:
            return None, SIGN_IN_REQUIRED_MESSAGE

        try:
            code = await self.resolver.active_code()
            visitor_id = await self.resolver.get_or_create_visitor_id()
        except SAFE_TO_IGNORE as e:
            self.logger.error(
                "Visitor storage unavailable, order placed unattributed",
                extra={"error": str(e)},
            )
            code, visitor_id = None, None

        async with self.session_maker() as session:
            return await OrderService(session).place_order(
                current.id,
                total,
                visitor_id=visitor_id,
                referral_code=code,
                now=self.resolver.clock(),
            )

    async def _on_auth_state_changed(
        self, identity: Identity | None
    ) -> None:
        if identity is None:
            return
        await self.attribute_registration(identity)
