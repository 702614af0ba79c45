"""
Tests for fixed-point amount scaling.
"""
from decimal import Decimal
from fractions import Fraction

import pytest
from hypothesis import given, settings, strategies as st

from txintent.amounts import from_raw_amount, parse_amount, to_raw_amount
from txintent.exceptions import PreconditionError
from txintent.handlers.base import scale_amount


class TestParseAmount:
    """Test parse_amount."""

    @pytest.mark.parametrize("value,expected", [
        ("1.5", Decimal("1.5")),
        (" 2 ", Decimal("2")),
        (3, Decimal("3")),
        (0.1, Decimal("0.1")),
        (Decimal("1e-18"), Decimal("1e-18")),
    ])
    def test_valid_amounts(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", True, None, [1]])
    def test_invalid_amounts(self, value):
        with pytest.raises(ValueError) as exc_info:
            parse_amount(value)
        assert "Amount must be a valid number" in str(exc_info.value)


class TestToRawAmount:
    """Test decimal scaling with floor rounding."""

    def test_one_and_a_half_ether(self):
        assert to_raw_amount("1.5", 18) == 1_500_000_000_000_000_000

    def test_float_input_does_not_leak_binary_error(self):
        # 0.1 * 10**18 as a binary float is 100000000000000005551...
        assert to_raw_amount(0.1, 18) == 100_000_000_000_000_000

    def test_floors_excess_precision(self):
        assert to_raw_amount("1.2345678", 6) == 1_234_567

    def test_zero_decimals(self):
        assert to_raw_amount("42.9", 0) == 42

    def test_large_values_keep_precision(self):
        assert to_raw_amount("123456789012345678901234567890.123456789012345678", 18) == \
            123456789012345678901234567890123456789012345678

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError):
            to_raw_amount("1", -1)

    def test_from_raw_amount(self):
        assert from_raw_amount(1_500_000, 6) == Decimal("1.5")


@settings(max_examples=100)
@given(
    raw=st.integers(min_value=0, max_value=2 ** 128),
    decimals=st.integers(min_value=0, max_value=36),
)
def test_raw_amounts_survive_display_conversion(raw, decimals):
    """Scaling a displayed amount back always returns the original integer."""
    assert to_raw_amount(from_raw_amount(raw, decimals), decimals) == raw


@settings(max_examples=100)
@given(
    amount=st.decimals(min_value=0, max_value=10 ** 12, allow_nan=False, allow_infinity=False, places=12),
    decimals=st.integers(min_value=0, max_value=18),
)
def test_scaling_never_rounds_up(amount, decimals):
    raw = to_raw_amount(amount, decimals)
    assert Fraction(raw, 10 ** decimals) <= Fraction(amount)


class TestScaleAmount:
    """Minor-unit conversion used by handlers at build time."""

    def test_within_bounds(self):
        assert scale_amount("1.5", 6, 2 ** 64 - 1) == 1_500_000

    def test_zero_stays_zero(self):
        assert scale_amount("0", 9, 2 ** 64 - 1) == 0

    @pytest.mark.parametrize("amount,decimals", [
        ("0.0000000000000000001", 18),
        ("0.0000000001", 9),
        ("0.5", 0),
    ])
    def test_positive_dust_rejected(self, amount, decimals):
        with pytest.raises(PreconditionError) as exc_info:
            scale_amount(amount, decimals, 2 ** 256 - 1)
        assert "smallest unit" in str(exc_info.value)

    def test_upper_bound_inclusive(self):
        assert scale_amount(str(2 ** 64 - 1), 0, 2 ** 64 - 1) == 2 ** 64 - 1
        with pytest.raises(PreconditionError):
            scale_amount(str(2 ** 64), 0, 2 ** 64 - 1)
