"""
Numeric Utilities - Centralized numeric value handling.

Provides standardized functions for:
1. Cleaning numeric values (handling NaN/Inf/None/booleans)
2. Parsing provider strings such as "12.5%", "1,234.5" or "N/A"
3. Safe division and display formatting

Every provider payload passes through these helpers, so a value is either a
finite float or None. Nothing downstream needs to re-check for NaN.
"""

import math
from typing import Any, Optional

# Strings providers use to mean "no value"
PLACEHOLDER_STRINGS = {"", "n/a", "na", "none", "null", "-", "--", "nan"}

# Currency markers some providers prefix to rupee amounts
CURRENCY_PREFIXES = ("₹", "Rs.", "Rs", "INR")


def clean_numeric(value: Any) -> Optional[float]:
    """
    Clean a numeric value, returning None for invalid values.

    Booleans are rejected; JSON payloads use them for flags, never amounts.

    Args:
        value: Raw value (float, int, numeric string, or None/NaN)

    Returns:
        Float value if valid, None if value is missing/invalid

    Examples:
        >>> clean_numeric("42.5")
        42.5
        >>> clean_numeric(float("inf")) is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        float_value = float(value)
    except (ValueError, TypeError):
        return None

    if math.isnan(float_value) or math.isinf(float_value):
        return None
    return float_value


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a provider value that may be a formatted string.

    Strips surrounding whitespace, a leading rupee marker ("₹", "Rs." or
    "INR"), a trailing "%" and thousands separators before parsing.
    Placeholder strings yield None.

    Examples:
        >>> parse_number("12.5%")
        12.5
        >>> parse_number("1,234")
        1234.0
        >>> parse_number("Rs. 1,234.5")
        1234.5
        >>> parse_number("N/A") is None
        True
    """
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in PLACEHOLDER_STRINGS:
            return None
        for prefix in CURRENCY_PREFIXES:
            if text.startswith(prefix):
                text = text[len(prefix):].strip()
                break
        if text.endswith('%'):
            text = text[:-1].strip()
        text = text.replace(',', '')
        return clean_numeric(text)
    return clean_numeric(value)


def safe_format(
    value: Any,
    format_spec: str = ".2f",
    default: str = "N/A",
    suffix: str = ""
) -> str:
    """
    Safely format a numeric value for display.

    Examples:
        >>> safe_format(1234.5, ",.0f")
        '1,234'
        >>> safe_format(None)
        'N/A'
        >>> safe_format(15, ".1f", suffix="%")
        '15.0%'
    """
    cleaned = clean_numeric(value)
    if cleaned is None:
        return default
    return f"{format(cleaned, format_spec)}{suffix}"


def safe_divide(
    numerator: Any,
    denominator: Any,
    default: Optional[float] = None
) -> Optional[float]:
    """
    Safely perform division, handling None/NaN/zero denominators.

    Examples:
        >>> safe_divide(10, 2)
        5.0
        >>> safe_divide(10, 0) is None
        True
    """
    clean_num = clean_numeric(numerator)
    clean_den = clean_numeric(denominator)

    if clean_num is None or clean_den is None or clean_den == 0:
        return default

    return clean_num / clean_den


def round_price(value: float) -> float:
    """Round a price to paise precision."""
    return round(value, 2)
