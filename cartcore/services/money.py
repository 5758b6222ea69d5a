"""
Money helpers for cart prices, quantities and totals.

Every amount is a Decimal. Floats are read through their repr so that
100.99 stays 100.99 instead of picking up binary noise.
"""
import math
import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from cartcore.config import CartConfig

Number = Union[str, int, float, Decimal]

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Leading decimal literal, e.g. "10" in "10%" or "-2.5" in "-2.5 off"
_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_NUMERIC_FULL = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")


def to_decimal(value: Union[Number, None]) -> Decimal:
    """Decimal for any number or numeric string; None, NaN, infinities and garbage give 0."""
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = repr(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return result if result.is_finite() else ZERO


def normalize_price(value: Union[Number, None]) -> Decimal:
    """
    Coerce a price or condition value to Decimal using its numeric prefix.

    Strings are read up to the end of their leading number, so "10%" is 10
    and "abc" is 0. Numbers are converted as-is.
    """
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value)
        if not match:
            return ZERO
        return to_decimal(match.group(1))
    return to_decimal(value)


def is_numeric(value) -> bool:
    """True for finite int/float/Decimal values and fully numeric strings."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, str):
        return _NUMERIC_FULL.match(value) is not None
    return False


def round_money(value: Number, decimals: int = 2) -> Decimal:
    """Round half up to the given number of decimals (cents by default)."""
    exponent = CENT if decimals == 2 else Decimal(1).scaleb(-decimals)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def format_number(value: Number, decimals: int = 2, dec_point: str = ".", thousands_sep: str = ",") -> str:
    """
    Format a number with grouped thousands.

    >>> format_number(Decimal("1234.5"), 2, ",", ".")
    '1.234,50'
    """
    rounded = round_money(value, decimals)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):,.{decimals}f}"
    int_part, _, fraction = text.partition(".")
    int_part = int_part.replace(",", thousands_sep)
    if decimals > 0:
        return f"{sign}{int_part}{dec_point}{fraction}"
    return f"{sign}{int_part}"


def format_value(value: Number, formatted: bool, config: "CartConfig") -> Union[Decimal, str]:
    """
    Format a cart amount when both the caller and the configuration ask for it.

    Returns the raw Decimal otherwise.
    """
    if formatted and config.format_numbers:
        return format_number(value, config.decimals, config.dec_point, config.thousands_sep)
    return to_decimal(value)


def to_float(value: Number) -> float:
    """Float for summaries and JSON output. Never feed it back into totals."""
    return float(to_decimal(value))


def multiply(value: Number, factor: Number) -> Decimal:
    return to_decimal(value) * to_decimal(factor)


def divide(value: Number, divisor: Number) -> Decimal:
    """Quotient, or 0 when dividing by zero."""
    divisor = to_decimal(divisor)
    if not divisor:
        return ZERO
    return to_decimal(value) / divisor


def percent(value: Number, percent_value: Number) -> Decimal:
    """percent_value percent of value: percent(200, 12.5) == 25."""
    return multiply(value, divide(percent_value, 100))
