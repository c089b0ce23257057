"""Unit tests for XMR amount conversion."""

from decimal import Decimal

import pytest

from simplepay.utils.exceptions import InvalidAmountError
from simplepay.utils.units import (
    atomic_units_to_xmr,
    format_xmr,
    to_decimal,
    xmr_to_atomic_units,
)


class TestXmrToAtomicUnits:
    """Tests for XMR -> piconero conversion."""

    def test_whole_amount(self):
        assert xmr_to_atomic_units(1) == 1_000_000_000_000

    def test_fractional_amount(self):
        assert xmr_to_atomic_units(Decimal("1.5")) == 1_500_000_000_000

    def test_float_uses_decimal_representation(self):
        """0.1 as float must not become 0.1000000000000000055..."""
        assert xmr_to_atomic_units(0.1) == 100_000_000_000

    def test_string_amount(self):
        assert xmr_to_atomic_units("0.000000000001") == 1

    def test_sub_atomic_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            xmr_to_atomic_units("0.0000000000001")

    @pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity", None, True])
    def test_invalid_amounts_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            xmr_to_atomic_units(amount)

    def test_invalid_amount_is_value_error(self):
        """Callers catching ValueError also catch bad amounts."""
        with pytest.raises(ValueError):
            to_decimal("not a number")


class TestAtomicUnitsToXmr:
    def test_conversion(self):
        assert atomic_units_to_xmr(1_500_000_000_000) == Decimal("1.5")

    def test_smallest_unit(self):
        assert atomic_units_to_xmr(1) == Decimal("0.000000000001")

    def test_display_equality_matches_atomic_equality(self):
        """1.4 and 1.5 differ both in display and in atomic units."""
        a = xmr_to_atomic_units("1.4")
        b = xmr_to_atomic_units("1.5")
        assert a != b
        assert atomic_units_to_xmr(a) != atomic_units_to_xmr(b)


class TestFormatXmr:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("1.500000000000"), "1.5"),
            (Decimal("10"), "10"),
            (Decimal("100.0"), "100"),
            (Decimal("0.000000000001"), "0.000000000001"),
        ],
    )
    def test_format(self, amount, expected):
        assert format_xmr(amount) == expected
