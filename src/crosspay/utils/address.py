"""Address format classification and validation."""

import re

from crosspay.core.exceptions import ValidationError
from crosspay.core.types import AddressModel

ELLIPSIS_MARKERS = ("...", "…")

_ACCOUNT_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


def is_truncated(address: str) -> bool:
    """Whether an address is an elided display string such as ``0x524...5FB2``."""
    return any(marker in address for marker in ELLIPSIS_MARKERS)


def is_account_address(address: str) -> bool:
    return bool(_ACCOUNT_RE.match(address))


def is_public_key_address(address: str) -> bool:
    return not address.startswith("0x") and len(address) == 44 and bool(_BASE58_RE.match(address))


def is_hex_data(data: str) -> bool:
    return bool(_HEX_RE.match(data)) and len(data) % 2 == 0


def classify_address(address: str) -> AddressModel | None:
    """Return the address model an address belongs to, or None if it fits neither."""
    if is_account_address(address):
        return AddressModel.ACCOUNT
    if is_public_key_address(address):
        return AddressModel.PUBLIC_KEY
    return None


def validate_address(address: str | None, model: AddressModel, field: str = "address") -> str:
    """
    Check that an address is usable as a transfer destination on a network
    with the given address model.

    Raises:
        ValidationError: empty, truncated, or wrong format for the model
    """
    if not address or not address.strip():
        raise ValidationError(f"{field} is required")
    address = address.strip()
    if is_truncated(address):
        raise ValidationError(
            f"{field} is a truncated display string", details={field: address}
        )
    actual = classify_address(address)
    if actual != model:
        raise ValidationError(
            f"{field} does not match the {model.value} address format",
            details={field: address, "expected": model.value, "actual": actual.value if actual else None},
        )
    return address


def short_address(address: str, chars: int = 4) -> str:
    """Shorten an address for logs and display. Never feed the result back into a transfer."""
    if len(address) <= 2 * chars + 2:
        return address
    return f"{address[:chars + 2]}...{address[-chars:]}"
