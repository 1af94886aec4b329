"""ERC-20 calldata encoding and return-data decoding."""

ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)
BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)

MAX_UINT256 = 2**256 - 1


def encode_uint256(val: int) -> str:
    """Encode uint256 as 32-byte hex."""
    if val < 0 or val > MAX_UINT256:
        raise ValueError(f"uint256 out of range: {val}")
    return f"{val:064x}"


def encode_address(addr: str) -> str:
    """Encode address as 32-byte hex (left-padded)."""
    addr_clean = addr.lower().removeprefix("0x")
    if len(addr_clean) != 40:
        raise ValueError(f"Not an account address: {addr}")
    return f"{addr_clean:>064}"


def decode_uint256(hex_data: str) -> int:
    """Decode the first 32-byte word as uint256. Empty return data reads as zero."""
    hex_data = hex_data.removeprefix("0x")
    if not hex_data:
        return 0
    return int(hex_data[:64], 16)


def encode_allowance(owner: str, spender: str) -> str:
    return ALLOWANCE_SELECTOR + encode_address(owner) + encode_address(spender)


def encode_approve(spender: str, amount: int) -> str:
    return APPROVE_SELECTOR + encode_address(spender) + encode_uint256(amount)


def encode_balance_of(owner: str) -> str:
    return BALANCE_OF_SELECTOR + encode_address(owner)
