import math

from utils.numeric_utils import clean_numeric, parse_number, safe_divide, safe_format


def test_clean_numeric_rejects_invalid():
    assert clean_numeric(None) is None
    assert clean_numeric(float('nan')) is None
    assert clean_numeric(math.inf) is None
    assert clean_numeric(True) is None
    assert clean_numeric("abc") is None
    assert clean_numeric("3") == 3.0


def test_parse_number_formats():
    assert parse_number(" 12.5% ") == 12.5
    assert parse_number("1,234.5") == 1234.5
    assert parse_number("None") is None
    assert parse_number(7) == 7.0


def test_safe_divide_and_format():
    assert safe_divide(10, 4) == 2.5
    assert safe_divide(10, 0) is None
    assert safe_divide(None, 3, default=0.0) == 0.0
    assert safe_format(None) == "N/A"
    assert safe_format(2.345, ".1f", suffix="x") == "2.3x"


def test_parse_number_strips_rupee_markers():
    assert parse_number("₹1,234") == 1234.0
    assert parse_number("Rs. 2,500.75") == 2500.75
    assert parse_number("INR 99") == 99.0
    assert parse_number("₹ N/A") is None
