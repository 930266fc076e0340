"""
Unit tests for input validators and schemas.

Tests cover:
- Amount parsing
- Referral code normalization
- Bank info validation
- Program settings update schema
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from injapan_affiliate.schemas.affiliate import AffiliateSettingsUpdate, BankInfo
from injapan_affiliate.validators import (
    validate_amount,
    validate_bank_info,
    validate_referral_code,
)


class TestValidateAmount:
    """Test amount validation."""

    @pytest.mark.parametrize(
        "value,expected",
        [("5000", Decimal("5000")), (1200, Decimal("1200")), (" 99.5 ", Decimal("99.5"))],
    )
    def test_valid(self, value, expected):
        """Strings, ints and padded input parse."""
        assert validate_amount(value) == (True, expected, None)

    @pytest.mark.parametrize("value", ["abc", "", None, "NaN", "Infinity", True])
    def test_invalid(self, value):
        """Garbage is rejected."""
        is_valid, amount, error = validate_amount(value)

        assert is_valid is False
        assert amount is None
        assert error == "Amount must be a valid number"

    def test_below_minimum(self):
        """Amounts below the minimum are rejected."""
        is_valid, _, error = validate_amount("-10")

        assert is_valid is False
        assert "greater than or equal to 0" in error


class TestValidateReferralCode:
    """Test referral code validation."""

    def test_normalizes(self):
        """Whitespace is stripped and letters upper-cased."""
        assert validate_referral_code(" johx7q7f3k ") == (True, "JOHX7Q7F3K", None)

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty(self, value):
        """Empty codes are rejected."""
        assert validate_referral_code(value)[0] is False

    def test_too_long(self):
        """Codes longer than 20 characters are rejected."""
        assert validate_referral_code("A" * 21)[2] == "Referral code is too long"

    @pytest.mark.parametrize("value", ["ABC-123", "ABC 123", "<b>"])
    def test_symbols(self, value):
        """Only letters and digits are allowed."""
        assert validate_referral_code(value)[0] is False


class TestBankInfo:
    """Test bank info validation."""

    def test_valid(self):
        """Valid details are normalized."""
        is_valid, bank_info, error = validate_bank_info(
            {
                "bank_name": " Mizuho ",
                "account_number": "123-4567",
                "account_name": "Hana Sato",
            }
        )

        assert is_valid is True
        assert error is None
        assert bank_info == {
            "bank_name": "Mizuho",
            "account_number": "1234567",
            "account_name": "Hana Sato",
        }

    def test_missing(self):
        """Bank info is required."""
        assert validate_bank_info(None) == (
            False, None, "Bank information is required"
        )

    def test_missing_field(self):
        """Missing fields are reported by name."""
        is_valid, _, error = validate_bank_info(
            {"bank_name": "Mizuho", "account_number": "1234567"}
        )

        assert is_valid is False
        assert "account_name" in error

    def test_non_numeric_account(self):
        """Account numbers are digits only."""
        with pytest.raises(ValidationError):
            BankInfo(bank_name="Mizuho", account_number="12AB567", account_name="X")


class TestAffiliateSettingsUpdate:
    """Test settings update schema."""

    def test_partial_update(self):
        """Unset fields stay None."""
        update = AffiliateSettingsUpdate(default_commission_rate="7.5")

        assert update.model_dump(exclude_none=True) == {
            "default_commission_rate": Decimal("7.5")
        }

    @pytest.mark.parametrize("rate", ["-1", "100.5"])
    def test_rate_range(self, rate):
        """Rates must be within 0-100."""
        with pytest.raises(ValidationError):
            AffiliateSettingsUpdate(default_commission_rate=rate)

    def test_payout_methods_cleaned(self):
        """Blank and duplicate methods are dropped."""
        update = AffiliateSettingsUpdate(
            payout_methods=[" Bank Transfer ", "PayPay", "", "PayPay"]
        )

        assert update.payout_methods == ["Bank Transfer", "PayPay"]

    def test_payout_methods_not_empty(self):
        """At least one method must remain."""
        with pytest.raises(ValidationError):
            AffiliateSettingsUpdate(payout_methods=["  "])

    def test_unknown_field_rejected(self):
        """Unknown settings are rejected."""
        with pytest.raises(ValidationError):
            AffiliateSettingsUpdate(site_url="https://evil.test")
