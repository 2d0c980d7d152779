"""Tests for wallet address helpers."""

import pytest

from web4apps.auth.address_validation import (
    INVALID_ADDRESS_MESSAGE,
    addresses_equal,
    is_valid_address,
    trim_address,
    validate_address,
)
from web4apps.errors import ValidationFailed

ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


class TestValidity:
    def test_mixed_case(self):
        assert is_valid_address(ADDRESS)
        assert is_valid_address(ADDRESS.lower())

    @pytest.mark.parametrize(
        "value",
        [
            "",
            None,
            42,
            ADDRESS[2:],
            ADDRESS + "0",
            ADDRESS[:-1],
            "0X" + ADDRESS[2:],
            "0x" + "g" * 40,
            ADDRESS + "\n",
        ],
    )
    def test_invalid(self, value):
        assert is_valid_address(value) is False

    def test_validate_returns_unchanged(self):
        assert validate_address(ADDRESS) == ADDRESS

    def test_validate_raises(self):
        with pytest.raises(ValidationFailed) as exc_info:
            validate_address("0x123")
        assert exc_info.value.message == INVALID_ADDRESS_MESSAGE
        assert exc_info.value.status_code == 400


class TestComparison:
    def test_case_insensitive(self):
        assert addresses_equal(ADDRESS, ADDRESS.lower())

    def test_none_never_equal(self):
        assert addresses_equal(None, None) is False
        assert addresses_equal(ADDRESS, None) is False


class TestTrim:
    def test_trim(self):
        assert trim_address(ADDRESS) == "0x2c753...65c23"

    def test_short_untouched(self):
        assert trim_address("0x1234") == "0x1234"
