"""Unit tests for the Money value object and cent helpers."""

from decimal import Decimal

import pytest

from order_editor.domain.value_objects.money import (
    MAX_MAGNITUDE,
    Money,
    is_incomplete_number,
    quantize,
    round2,
    to_bool,
    to_decimal,
)


class TestToDecimal:
    """Coercion of raw editor input."""

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", True, float("nan"), [], {}])
    def test_non_numeric_becomes_zero(self, value):
        """Empty and non-numeric input must coerce to 0."""
        assert to_decimal(value) == Decimal("0")

    def test_float_goes_through_str(self):
        """Floats must not carry binary noise."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_numeric_string(self):
        """Numeric strings are parsed, surrounding whitespace ignored."""
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["1e27", 10**40, Decimal("9" * 60)])
    def test_oversized_magnitude_clamped(self, value):
        assert to_decimal(value) == MAX_MAGNITUDE

    def test_oversized_negative_keeps_sign(self):
        assert to_decimal("-1e30") == -MAX_MAGNITUDE


class TestToBool:
    @pytest.mark.parametrize("value", ["true", " TRUE ", "1", "yes", "on", True, 1, Decimal("2")])
    def test_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "False", "0", "no", "", None, False, 0])
    def test_falsy(self, value):
        """The string "false" must not count as set."""
        assert to_bool(value) is False


class TestRound2:
    """Cent rounding is half away from zero."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1.005", Decimal("1.01")),
            ("2.675", Decimal("2.68")),
            ("-1.005", Decimal("-1.01")),
            ("18", Decimal("18.00")),
        ],
    )
    def test_half_up(self, value, expected):
        """Halves must round away from zero."""
        assert round2(value) == expected

    def test_large_magnitudes_do_not_raise(self):
        """Cent rounding holds past the default 28-digit context precision."""
        huge = Decimal("123456789012345678901234567.891")
        assert quantize(huge, Decimal("0.01")) == Decimal("123456789012345678901234567.89")
        assert Money(huge).amount == Decimal("123456789012345678901234567.89")


class TestIncompleteNumber:
    def test_trailing_dot_is_incomplete(self):
        """A number still being typed ends with a dot."""
        assert is_incomplete_number("12.") is True

    def test_complete_values(self):
        """Finished numbers and non-strings are complete."""
        assert is_incomplete_number("12.5") is False
        assert is_incomplete_number(".") is False
        assert is_incomplete_number(12) is False


class TestMoney:
    """Money arithmetic and validation."""

    def test_amount_rounded_to_cent(self):
        """Amounts are stored at cent precision."""
        assert Money(Decimal("10.125")).amount == Decimal("10.13")

    def test_add_same_currency(self):
        """Amounts in the same currency add up."""
        total = Money(Decimal("1180"), "PKR") + Money(Decimal("150"), "PKR")
        assert total.amount == Decimal("1330.00")
        assert str(total) == "PKR 1,330.00"

    def test_add_different_currency_raises(self):
        """Mixing currencies must fail."""
        with pytest.raises(ValueError):
            Money(Decimal("1"), "PKR") + Money(Decimal("1"), "USD")

    def test_invalid_currency_code(self):
        """Currency codes have three letters."""
        with pytest.raises(ValueError):
            Money(Decimal("1"), "PK")

    def test_clamp_non_negative(self):
        """Negative amounts clamp to zero, positive ones are kept."""
        assert Money(Decimal("-5")).clamp_non_negative().is_zero
        assert Money(Decimal("5")).clamp_non_negative().amount == Decimal("5.00")

    def test_multiply(self):
        assert (Money(Decimal("2.50")) * 3).amount == Decimal("7.50")
