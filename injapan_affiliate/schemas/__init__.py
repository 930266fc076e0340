"""
Schemas package.

Pydantic models validating affiliate program input.
"""

from injapan_affiliate.schemas.affiliate import (
    AffiliateSettingsUpdate,
    BankInfo,
)


__all__ = [
    "AffiliateSettingsUpdate",
    "BankInfo",
]
