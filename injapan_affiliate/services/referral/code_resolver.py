"""
Referral code resolver.

Captures the ``ref`` query parameter on landing, remembers it in the
visitor's storage together with the capture time, and answers whether the
captured code is still inside the attribution window.
"""

import secrets
import string
from collections.abc import Callable
from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlsplit

from loguru import logger

from injapan_affiliate.config.constants import (
    REFERRAL_QUERY_PARAM,
    STORAGE_KEY_REFERRAL_CODE,
    STORAGE_KEY_REFERRAL_TIMESTAMP,
    STORAGE_KEY_VISITOR_ID,
    VISITOR_ID_PREFIX,
)
from injapan_affiliate.config.settings import settings
from injapan_affiliate.storage.key_value import KeyValueStore
from injapan_affiliate.utils.datetime_utils import to_epoch_millis, utc_now
from injapan_affiliate.validators.common import validate_referral_code

VISITOR_ID_RANDOM_LENGTH = 9
_VISITOR_ALPHABET = string.ascii_lowercase + string.digits


def extract_query(url_or_query: str) -> str:
    """Return the query-string part of a URL, or the input if it is one."""
    if "://" in url_or_query or url_or_query.startswith("/"):
        return urlsplit(url_or_query).query
    if "?" in url_or_query:
        return url_or_query.split("?", 1)[1]
    return url_or_query


class ReferralCodeResolver:
    """
    Last-touch referral code capture for one visitor.

    Example:
        resolver = ReferralCodeResolver(MemoryKeyValueStore())
        await resolver.resolve_incoming_code("https://shop/?ref=JOHABC1234")
        code = await resolver.active_code()
    """

    def __init__(
        self,
        storage: KeyValueStore,
        window_days: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize resolver.

        Args:
            storage: Visitor key/value storage
            window_days: Attribution window (default from settings)
            clock: Source of the current time
        """
        self.storage = storage
        if window_days is None:
            window_days = settings.referral_window_days
        self.window = timedelta(days=window_days)
        self.clock = clock

    async def resolve_incoming_code(self, url_or_query: str) -> str | None:
        """
        Capture the referral code from a landing URL.

        A present code overwrites any earlier one and restarts the window.
        No code leaves storage untouched.

        Args:
            url_or_query: Full URL or query string

        Returns:
            Captured code or None
        """
        params = parse_qs(extract_query(url_or_query or ""))
        values = params.get(REFERRAL_QUERY_PARAM)
        if not values:
            return None

        is_valid, code, error = validate_referral_code(values[0])
        if not is_valid:
            logger.warning(
                "Ignoring malformed referral code",
                extra={"raw_code": values[0][:40], "reason": error},
            )
            return None

        captured_at = to_epoch_millis(self.clock())
        await self.storage.set(STORAGE_KEY_REFERRAL_CODE, code)
        await self.storage.set(
            STORAGE_KEY_REFERRAL_TIMESTAMP, str(captured_at)
        )

        logger.debug(
            "Referral code captured",
            extra={"referral_code": code, "captured_at": captured_at},
        )
        return code

    async def stored_code(self) -> str | None:
        """Get the captured code regardless of its age."""
        return await self.storage.get(STORAGE_KEY_REFERRAL_CODE)

    async def is_still_valid(self, now: datetime | None = None) -> bool:
        """
        Check the captured code against the attribution window.

        Valid iff ``now - captured_at <= window``. A missing or unreadable
        timestamp is treated as expired.

        Args:
            now: Moment to check at (default: clock)

        Returns:
            True if inside the window
        """
        raw = await self.storage.get(STORAGE_KEY_REFERRAL_TIMESTAMP)
        if not raw:
            return False

        try:
            captured_at = int(raw)
        except ValueError:
            logger.warning(
                "Unreadable referral timestamp",
                extra={"raw_timestamp": raw[:40]},
            )
            return False

        now_ms = to_epoch_millis(now or self.clock())
        window_ms = int(self.window.total_seconds() * 1000)
        return now_ms - captured_at <= window_ms

    async def active_code(self, now: datetime | None = None) -> str | None:
        """Get the captured code if it is still valid."""
        code = await self.stored_code()
        if not code:
            return None
        if not await self.is_still_valid(now):
            return None
        return code

    async def get_or_create_visitor_id(self) -> str:
        """
        Get the visitor id, generating ``visitor_<ms>_<random>`` once.

        Returns:
            Stable visitor id for this storage
        """
        visitor_id = await self.storage.get(STORAGE_KEY_VISITOR_ID)
        if visitor_id:
            return visitor_id

        suffix = "".join(
            secrets.choice(_VISITOR_ALPHABET)
            for _ in range(VISITOR_ID_RANDOM_LENGTH)
        )
        visitor_id = (
            f"{VISITOR_ID_PREFIX}_{to_epoch_millis(self.clock())}_{suffix}"
        )
        await self.storage.set(STORAGE_KEY_VISITOR_ID, visitor_id)
        return visitor_id

    async def clear(self) -> None:
        """Forget the captured code and its timestamp."""
        await self.storage.delete(STORAGE_KEY_REFERRAL_CODE)
        await self.storage.delete(STORAGE_KEY_REFERRAL_TIMESTAMP)
