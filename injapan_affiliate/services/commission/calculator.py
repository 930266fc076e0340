"""
Commission calculator.

Pure functions deriving a commission from an order total and the rate in
effect when the order is placed.
"""

from decimal import ROUND_HALF_UP, Decimal

from injapan_affiliate.models.affiliate import AffiliateAccount
from injapan_affiliate.models.affiliate_settings import AffiliateSettings

HUNDRED = Decimal("100")


def compute_commission(
    order_total: Decimal | int | str,
    rate_at_order_time: Decimal | int | str,
    quantum: Decimal | str = Decimal("1"),
) -> Decimal:
    """
    Calculate commission amount.

    Formula: round_half_up(order_total * rate / 100) to the currency unit.

    Args:
        order_total: Order total in the store currency
        rate_at_order_time: Commission rate in percent (5 means 5%)
        quantum: Smallest currency unit (Decimal("1") for JPY)

    Returns:
        Commission amount

    Raises:
        ValueError: On negative total or rate outside 0-100

    Examples:
        >>> compute_commission(10000, 5)
        Decimal('500')
        >>> compute_commission(999, 5)
        Decimal('50')
    """
    total = Decimal(str(order_total))
    rate = Decimal(str(rate_at_order_time))

    if total < 0:
        raise ValueError(f"Order total cannot be negative: {total}")
    if rate < 0 or rate > HUNDRED:
        raise ValueError(f"Commission rate must be within 0-100: {rate}")

    raw = total * rate / HUNDRED
    return raw.quantize(Decimal(str(quantum)), rounding=ROUND_HALF_UP)


def resolve_rate(
    affiliate: AffiliateAccount, program_settings: AffiliateSettings
) -> Decimal:
    """
    Get the rate applying to an affiliate right now.

    Args:
        affiliate: Affiliate account (may carry an override)
        program_settings: Program settings (default rate)

    Returns:
        Commission rate in percent
    """
    if affiliate.commission_rate is not None:
        return Decimal(str(affiliate.commission_rate))
    return Decimal(str(program_settings.default_commission_rate))
