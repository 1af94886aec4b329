"""Utility functions for CrossPay."""

from crosspay.utils.address import (
    classify_address,
    is_truncated,
    short_address,
    validate_address,
)
from crosspay.utils.amounts import (
    from_smallest_unit,
    parse_amount,
    require_positive_amount,
    to_smallest_unit,
)

__all__ = [
    # Address utilities
    "classify_address",
    "is_truncated",
    "short_address",
    "validate_address",
    # Amount utilities
    "from_smallest_unit",
    "parse_amount",
    "require_positive_amount",
    "to_smallest_unit",
]
