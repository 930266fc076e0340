"""
Common validators for affiliate input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from injapan_affiliate.config.constants import REFERRAL_CODE_MAX_LENGTH
from injapan_affiliate.schemas.affiliate import BankInfo

REFERRAL_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


def validate_amount(
    value: Any, min_amount: Decimal = Decimal("0")
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate money amount.

    Args:
        value: Amount as str, int or Decimal
        min_amount: Minimum allowed amount (default: 0)

    Returns:
        Tuple of (is_valid, parsed_amount, error_message)

    Examples:
        >>> validate_amount("5000")
        (True, Decimal('5000'), None)
        >>> validate_amount("abc")
        (False, None, 'Amount must be a valid number')
    """
    if value is None or isinstance(value, bool):
        return False, None, "Amount must be a valid number"

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return False, None, "Amount must be a valid number"

    if not amount.is_finite():
        return False, None, "Amount must be a valid number"

    if amount < min_amount:
        return (
            False,
            None,
            f"Amount must be greater than or equal to {min_amount}",
        )

    return True, amount, None


def validate_referral_code(
    value: str | None,
) -> tuple[bool, str | None, str | None]:
    """
    Validate and normalize a referral code.

    Codes are upper-case letters and digits.

    Args:
        value: Raw code (for example from a query string)

    Returns:
        Tuple of (is_valid, normalized_code, error_message)
    """
    if not value or not isinstance(value, str):
        return False, None, "Referral code cannot be empty"

    code = value.strip().upper()
    if not code:
        return False, None, "Referral code cannot be empty"

    if len(code) > REFERRAL_CODE_MAX_LENGTH:
        return False, None, "Referral code is too long"

    if not REFERRAL_CODE_PATTERN.match(code):
        return False, None, "Referral code may only contain letters and digits"

    return True, code, None


def validate_bank_info(
    value: dict[str, Any] | None,
) -> tuple[bool, dict[str, str] | None, str | None]:
    """
    Validate payout bank details.

    Args:
        value: Dict with bank_name, account_number, account_name

    Returns:
        Tuple of (is_valid, normalized_bank_info, error_message)
    """
    if not value:
        return False, None, "Bank information is required"

    try:
        bank_info = BankInfo.model_validate(value)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        return False, None, f"Invalid {field}: {first['msg']}"

    return True, bank_info.model_dump(), None
