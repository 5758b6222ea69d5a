"""
Tests for money utilities
"""

from decimal import Decimal

from cartcore.config import CartConfig
from cartcore.services.money import (
    format_number,
    format_value,
    is_numeric,
    normalize_price,
    percent,
    round_money,
    to_decimal,
)


class TestToDecimal:
    """Tests for Decimal conversion."""

    def test_float_keeps_written_precision(self):
        """Floats convert through their string form."""
        assert to_decimal(100.99) == Decimal("100.99")

    def test_invalid_values_are_zero(self):
        """None and garbage become zero."""
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("abc") == Decimal("0")

    def test_non_finite_values_are_zero(self):
        assert to_decimal(float("nan")) == Decimal("0")
        assert to_decimal(float("-inf")) == Decimal("0")
        assert to_decimal(Decimal("Infinity")) == Decimal("0")


class TestNormalizePrice:
    """Tests for numeric prefix coercion."""

    def test_plain_numbers(self):
        assert normalize_price("25") == Decimal("25")
        assert normalize_price(12.5) == Decimal("12.5")

    def test_reads_leading_number_only(self):
        """Trailing characters after the number are ignored."""
        assert normalize_price("10%") == Decimal("10")
        assert normalize_price(" 2.5 off") == Decimal("2.5")

    def test_non_numeric_prefix_is_zero(self):
        assert normalize_price("%10") == Decimal("0")
        assert normalize_price("") == Decimal("0")


class TestIsNumeric:
    """Tests for numeric checks used by validation."""

    def test_numbers(self):
        assert is_numeric(1)
        assert is_numeric(0.1)
        assert is_numeric(Decimal("3"))
        assert is_numeric("100.99")

    def test_non_numbers(self):
        assert not is_numeric("10%")
        assert not is_numeric("abc")
        assert not is_numeric(None)
        assert not is_numeric(True)
        assert not is_numeric(float("nan"))
        assert not is_numeric(float("inf"))
        assert not is_numeric(Decimal("NaN"))


class TestFormatting:
    """Tests for number formatting."""

    def test_round_half_up(self):
        assert round_money("0.125") == Decimal("0.13")
        assert round_money("2.5", decimals=0) == Decimal("3")

    def test_format_number_default_separators(self):
        assert format_number(Decimal("1234567.891")) == "1,234,567.89"

    def test_format_number_custom_separators(self):
        assert format_number(Decimal("1234.5"), 2, ",", ".") == "1.234,50"
        assert format_number(Decimal("1234.5"), 0, ",", " ") == "1 235"

    def test_format_negative(self):
        assert format_number(Decimal("-1234.567")) == "-1,234.57"

    def test_format_value_respects_config(self):
        """Formatting needs both the flag and the configuration switch."""
        enabled = CartConfig(format_numbers=True)
        disabled = CartConfig(format_numbers=False)

        assert format_value(Decimal("1000"), True, enabled) == "1,000.00"
        assert format_value(Decimal("1000"), False, enabled) == Decimal("1000")
        assert format_value(Decimal("1000"), True, disabled) == Decimal("1000")

    def test_percent(self):
        assert percent(Decimal("100.99"), 5) == Decimal("5.0495")
