"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Admin
    admin_user_ids: str = ""  # Comma-separated identity-provider user ids

    # Storefront
    site_url: str = "https://injapan-food.example"

    # Redis (server-side visitor storage)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/affiliate.log"

    # Affiliate program defaults (seed the settings row on first read)
    affiliate_default_commission_rate: Decimal = Field(
        default=Decimal("5"),
        ge=0,
        le=100,
        description="Default commission rate in percent",
    )
    affiliate_min_payout_amount: Decimal = Field(
        default=Decimal("5000"),
        ge=0,
        description="Minimum payout amount (JPY)",
    )
    affiliate_payout_methods: str = "Bank Transfer"  # Comma-separated
    affiliate_terms: str = (
        "Default terms and conditions for the affiliate program."
    )

    # Referral attribution
    referral_window_days: int = Field(
        default=30, gt=0, description="Days a captured referral code stays valid"
    )

    # Smallest currency unit commissions are rounded to (JPY has none)
    currency_quantum: Decimal = Field(default=Decimal("1"), gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if not self.admin_ids:
                logger.warning(
                    'ADMIN_USER_IDS is empty: nobody can approve commissions '
                    'or process payouts.'
                )
        return self

    @field_validator('admin_user_ids')
    @classmethod
    def validate_admin_ids(cls, v: str) -> str:
        """Validate admin id list format."""
        for part in v.split(","):
            part = part.strip()
            if part and any(ch.isspace() for ch in part):
                raise ValueError(
                    f'Invalid admin user id "{part}": ids cannot contain spaces'
                )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    @property
    def admin_ids(self) -> list[str]:
        """Get list of admin user ids."""
        return [
            part.strip()
            for part in self.admin_user_ids.split(",")
            if part.strip()
        ]

    @property
    def payout_methods(self) -> list[str]:
        """Get default list of payout methods."""
        return [
            part.strip()
            for part in self.affiliate_payout_methods.split(",")
            if part.strip()
        ]


settings = Settings()
