"""Pydantic models for affiliate program input."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BankInfo(BaseModel):
    """Payout destination of an affiliate.

    Copied onto every payout request as a snapshot.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    bank_name: str = Field(..., min_length=1, max_length=255, description="Bank name")
    account_number: str = Field(
        ..., min_length=4, max_length=34, description="Account number"
    )
    account_name: str = Field(
        ..., min_length=1, max_length=255, description="Account holder name"
    )

    @field_validator("account_number")
    @classmethod
    def validate_account_number(cls, v: str) -> str:
        """Allow digits with optional spaces or dashes."""
        digits = v.replace(" ", "").replace("-", "")
        if not digits.isdigit():
            raise ValueError("Account number must contain digits only")
        return digits


class AffiliateSettingsUpdate(BaseModel):
    """Partial update of program settings (admin screen)."""

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    default_commission_rate: Decimal | None = Field(
        default=None, ge=0, le=100, description="Default commission rate in percent"
    )
    min_payout_amount: Decimal | None = Field(
        default=None, ge=0, description="Minimum payout amount"
    )
    payout_methods: list[str] | None = Field(
        default=None, min_length=1, description="Accepted payout methods"
    )
    terms_and_conditions: str | None = Field(
        default=None, min_length=1, description="Program terms"
    )

    @field_validator("payout_methods")
    @classmethod
    def validate_payout_methods(cls, v: list[str] | None) -> list[str] | None:
        """Strip names and drop blanks and duplicates."""
        if v is None:
            return v
        methods: list[str] = []
        for method in v:
            method = method.strip()
            if method and method not in methods:
                methods.append(method)
        if not methods:
            raise ValueError("At least one payout method is required")
        return methods
