"""
test_decimal_utils.py - Coercion and rounding helpers.

Tests cover:
  - to_decimal tolerance (None, bool, blank, junk, NaN, infinity, floats)
  - Zero-safe division with and without an explicit default
  - Half-up rounding to cents and to arbitrary places
  - Percentages, sums and two-decimal money formatting
"""

from decimal import Decimal

import pytest

from app.services.decimal_utils import (
    format_money,
    round_to,
    round_to_cents,
    safe_divide,
    sum_values,
    to_decimal,
    to_percentage,
)


class TestToDecimal:

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "12abc", float("nan"), "NaN",
                                       float("inf"), "-Infinity", True, False, object()])
    def test_invalid_input_becomes_zero(self, value):
        assert to_decimal(value) == Decimal("0")

    def test_float_keeps_its_short_form(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_strings_are_trimmed(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_decimal_passes_through(self):
        d = Decimal("3.14159")
        assert to_decimal(d) is d

    def test_int_and_negative(self):
        assert to_decimal(42) == Decimal("42")
        assert to_decimal("-7.5") == Decimal("-7.5")


class TestSafeDivide:

    def test_regular_division(self):
        assert safe_divide(10, 4) == Decimal("2.5")

    def test_zero_denominator_returns_zero(self):
        assert safe_divide(10, 0) == Decimal("0")

    def test_zero_denominator_returns_default(self):
        assert safe_divide(10, "0.00", default=5) == Decimal("5")

    def test_junk_denominator_counts_as_zero(self):
        assert safe_divide(10, "n/a") == Decimal("0")


class TestRounding:

    def test_half_up_to_cents(self):
        assert round_to_cents(Decimal("2.345")) == Decimal("2.35")
        assert round_to_cents(Decimal("2.344")) == Decimal("2.34")
        assert round_to_cents(Decimal("-2.345")) == Decimal("-2.35")

    def test_round_to_one_place(self):
        assert round_to(Decimal("55.55555"), 1) == Decimal("55.6")
        assert round_to(Decimal("55.55555"), 2) == Decimal("55.56")

    def test_round_to_zero_places(self):
        assert round_to(Decimal("2.5"), 0) == Decimal("3")

    def test_rounded_values_carry_exact_exponent(self):
        assert str(round_to_cents(7)) == "7.00"


class TestPercentageAndSum:

    def test_percentage(self):
        assert to_percentage(1, 3) == Decimal("33.33")
        assert to_percentage(125, 225) == Decimal("55.56")

    def test_percentage_of_zero_whole(self):
        assert to_percentage(5, 0) == Decimal("0.00")

    def test_sum_skips_junk(self):
        assert sum_values([1, "2.5", None, "x", Decimal("0.25")]) == Decimal("3.75")

    def test_sum_of_nothing(self):
        assert sum_values([]) == Decimal("0")


class TestFormatMoney:

    @pytest.mark.parametrize("value, expected", [
        (225, "225.00"),
        (Decimal("1234.5"), "1234.50"),
        ("0.005", "0.01"),
        (None, "0.00"),
        ("-0.001", "0.00"),
        (Decimal("-12.345"), "-12.35"),
    ])
    def test_two_fractional_digits(self, value, expected):
        assert format_money(value) == expected
