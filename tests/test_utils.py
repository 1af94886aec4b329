"""Tests for address and amount helpers."""

from decimal import Decimal

import pytest

from crosspay.core.exceptions import ValidationError
from crosspay.core.types import AddressModel
from crosspay.utils import (
    classify_address,
    from_smallest_unit,
    is_truncated,
    parse_amount,
    require_positive_amount,
    short_address,
    to_smallest_unit,
    validate_address,
)

from .conftest import PAYER_ADDRESS, SOLANA_ADDRESS


class TestAddresses:
    @pytest.mark.parametrize("address", ["0x524...5FB2", "0x524…5FB2", "..."])
    def test_truncated(self, address):
        assert is_truncated(address)

    def test_classify(self):
        assert classify_address(PAYER_ADDRESS) == AddressModel.ACCOUNT
        assert classify_address(SOLANA_ADDRESS) == AddressModel.PUBLIC_KEY
        assert classify_address("0x1234") is None
        assert classify_address("not-an-address") is None

    def test_validate_strips_whitespace(self):
        assert validate_address(f"  {PAYER_ADDRESS} ", AddressModel.ACCOUNT) == PAYER_ADDRESS

    def test_validate_rejects_wrong_model(self):
        with pytest.raises(ValidationError, match="does not match"):
            validate_address(SOLANA_ADDRESS, AddressModel.ACCOUNT)
        with pytest.raises(ValidationError, match="does not match"):
            validate_address(PAYER_ADDRESS, AddressModel.PUBLIC_KEY)

    def test_validate_rejects_truncated(self):
        with pytest.raises(ValidationError, match="truncated"):
            validate_address("0x524...5FB2", AddressModel.ACCOUNT)

    @pytest.mark.parametrize("address", [None, "", "   "])
    def test_validate_rejects_empty(self, address):
        with pytest.raises(ValidationError, match="required"):
            validate_address(address, AddressModel.ACCOUNT)

    def test_short_address(self):
        assert short_address(PAYER_ADDRESS) == "0x1111...1111"
        assert short_address("0xabc") == "0xabc"


class TestAmounts:
    @pytest.mark.parametrize(
        "value,expected",
        [("12.5", Decimal("12.5")), (3, Decimal("3")), (" 1 ", Decimal("1")), (Decimal("0"), Decimal("0"))],
    )
    def test_parse(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [None, "abc", "", "NaN", "Infinity", True])
    def test_parse_invalid(self, value):
        assert parse_amount(value) is None

    @pytest.mark.parametrize("value", ["0", "-1", "abc", None])
    def test_require_positive(self, value):
        with pytest.raises(ValidationError):
            require_positive_amount(value)

    def test_rounds_down(self):
        assert to_smallest_unit(Decimal("1.0000005"), 6) == 1000000
        assert to_smallest_unit(Decimal("0.9999999"), 6) == 999999
        assert to_smallest_unit(Decimal("25"), 18) == 25 * 10**18

    def test_from_smallest_unit(self):
        assert from_smallest_unit(1500000, 6) == Decimal("1.5")
