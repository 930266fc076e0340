"""
Validators package.

Provides common validation functions for affiliate input.
"""

from injapan_affiliate.validators.common import (
    validate_amount,
    validate_bank_info,
    validate_referral_code,
)


__all__ = [
    "validate_amount",
    "validate_bank_info",
    "validate_referral_code",
]
