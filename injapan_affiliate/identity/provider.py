"""
Identity provider adapter.

Wraps the managed identity provider (sign-in, sign-up, sign-out) and
exposes the current identity plus an auth-state-changed subscription.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from injapan_affiliate.config.settings import settings


@dataclass(frozen=True)
class Identity:
    """Authenticated user as reported by the identity provider."""

    id: str
    email: str = ""
    display_name: str = ""

    @property
    def name_for_referral(self) -> str:
        """Display name, falling back to the e-mail local part."""
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@")[0]
        return "User"


AuthCallback = Callable[[Identity | None], Awaitable[None] | None]


class IdentityBackend(Protocol):
    """Vendor SDK calls behind the adapter."""

    async def sign_in(self, email: str, password: str) -> Identity:
        """Authenticate existing user."""
        ...

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> Identity:
        """Create user and authenticate."""
        ...

    async def sign_out(self) -> None:
        """End session."""
        ...


def is_admin(identity: Identity | None) -> bool:
    """
    Check admin rights.

    Args:
        identity: Identity to check

    Returns:
        True if identity id is listed in ADMIN_USER_IDS
    """
    return identity is not None and identity.id in settings.admin_ids


class IdentityAdapter:
    """Holds the current identity and notifies auth-state subscribers."""

    def __init__(
        self, backend: IdentityBackend, current: Identity | None = None
    ) -> None:
        """
        Initialize adapter.

        Args:
            backend: Identity provider SDK wrapper
            current: Identity restored from a persisted session
        """
        self.backend = backend
        self._current = current
        self._subscribers: list[AuthCallback] = []

    def current_user(self) -> Identity | None:
        """Get current identity or None."""
        return self._current

    def on_auth_state_changed(
        self, callback: AuthCallback
    ) -> Callable[[], None]:
        """
        Subscribe to sign-in / sign-out events.

        Args:
            callback: Called with the new identity (None on sign-out)

        Returns:
            Unsubscribe function
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def sign_in(self, email: str, password: str) -> Identity:
        """Sign in and notify subscribers."""
        identity = await self.backend.sign_in(email, password)
        await self._set_current(identity)
        return identity

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> Identity:
        """Sign up and notify subscribers."""
        identity = await self.backend.sign_up(email, password, display_name)
        await self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        """Sign out and notify subscribers."""
        await self.backend.sign_out()
        await self._set_current(None)

    async def _set_current(self, identity: Identity | None) -> None:
        self._current = identity
        for callback in list(self._subscribers):
            try:
                result = callback(identity)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # Subscribers must never break authentication
                logger.error(
                    "Auth state subscriber failed",
                    extra={
                        "user_id": identity.id if identity else None,
                        "error": str(e),
                    },
                    exc_info=True,
                )
