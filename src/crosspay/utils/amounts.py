"""Human amount parsing and smallest-unit conversion."""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from crosspay.core.exceptions import ValidationError
from crosspay.core.types import AmountType


def parse_amount(value: AmountType | None) -> Decimal | None:
    """Parse a human amount, returning None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def require_positive_amount(value: AmountType | None, field: str = "amount") -> Decimal:
    """
    Parse a human amount that must be strictly positive.

    Raises:
        ValidationError: not numeric or not > 0
    """
    amount = parse_amount(value)
    if amount is None:
        raise ValidationError(f"{field} must be a number", details={field: str(value)})
    if amount <= 0:
        raise ValidationError(f"{field} must be positive", details={field: str(value)})
    return amount


def to_smallest_unit(amount: Decimal, decimals: int) -> int:
    """floor(amount * 10^decimals): never more than the human amount."""
    scaled = amount.scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_smallest_unit(value: int, decimals: int) -> Decimal:
    return Decimal(value).scaleb(-decimals)
