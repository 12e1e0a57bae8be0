"""
Tests for amount scaling
"""

from decimal import Decimal

import pytest

from ledgerchat.core.ledger.units import AmountError, format_amount, from_smallest_unit, to_smallest_unit


class TestToSmallestUnit:
    """Tests for decimal -> integer scaling."""

    def test_whole_hbar(self):
        assert to_smallest_unit("50", 8) == 5_000_000_000

    def test_one_tinybar(self):
        assert to_smallest_unit("0.00000001", 8) == 1

    def test_float_input_is_exact(self):
        # 0.1 as binary float must still become exactly 10_000_000 tinybars
        assert to_smallest_unit(0.1, 8) == 10_000_000

    def test_decimal_and_int_input(self):
        assert to_smallest_unit(Decimal("1.5"), 6) == 1_500_000
        assert to_smallest_unit(3, 0) == 3

    def test_large_amount_keeps_precision(self):
        assert to_smallest_unit("12345678901234567.12345678", 8) == 1234567890123456712345678

    def test_too_many_decimals_is_rejected(self):
        with pytest.raises(AmountError):
            to_smallest_unit("0.000000001", 8)

    @pytest.mark.parametrize("value", ["-1", "NaN", "Infinity", "abc", True])
    def test_invalid_values(self, value):
        with pytest.raises(AmountError):
            to_smallest_unit(value, 8)

    def test_negative_decimals(self):
        with pytest.raises(ValueError):
            to_smallest_unit("1", -1)


class TestFormatting:
    """Tests for smallest unit -> display."""

    def test_from_smallest_unit(self):
        assert from_smallest_unit(150_000_000, 8) == Decimal("1.5")

    def test_format_strips_trailing_zeros(self):
        assert format_amount(5_000_000_000, 8, "HBAR") == "50 HBAR"
        assert format_amount(1_500_000, 6) == "1.5"

    def test_format_smallest_step(self):
        assert format_amount(1, 8, "HBAR") == "0.00000001 HBAR"
