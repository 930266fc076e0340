"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError, SQLAlchemyError


class AffiliateError(Exception):
    """Base error for the affiliate pipeline."""
    pass


class ValidationError(AffiliateError):
    """Raised when a request is rejected with a specific, user-facing reason."""
    pass


class ConsistencyError(AffiliateError):
    """
    Raised when an operation would violate a data invariant.

    The detail is logged; callers only see a generic retry message.
    """
    pass


class SecurityError(AffiliateError):
    """Raised when a non-admin identity attempts an admin-only operation."""
    pass


# Exception categories based on handling strategy

# Safe to ignore - tracking writes that fail gracefully
SAFE_TO_IGNORE = (
    RedisError,       # Server-side visitor storage unavailable
)

# Must log but can continue - non-critical failures
MUST_LOG = (
    OperationalError,  # Store unreachable
    SQLAlchemyError,   # Any other data-layer failure in best-effort paths
    ConnectionError,
    TimeoutError,
)

