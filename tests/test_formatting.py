import math

from marketlens.core.formatting import (
    format_currency,
    format_fixed,
    format_number,
    format_percent,
    safe_ratio,
    to_float,
)


def test_to_float():
    assert to_float("1.5") == 1.5
    assert to_float(None) is None
    assert to_float(True) is None  # booleans are not numbers here
    assert to_float(float("nan")) is None
    assert to_float("abc") is None


def test_format_percent():
    assert format_percent(0.1234) == "12.34%"
    assert format_percent(-0.05) == "-5.00%"
    assert format_percent(None) == "N/A"


def test_format_currency_and_number():
    assert format_currency(1.5e9) == "$1.50B"
    assert format_currency("x") == "N/A"
    assert format_number(3e9) == "3.00B"
    assert format_number(2.5e6) == "2.50M"
    assert format_number(1500) == "1.50K"
    assert format_number(12) == "12.00"


def test_format_fixed():
    assert format_fixed(1.234) == "1.23"
    assert format_fixed(1.26, 1, "x") == "1.3x"
    assert format_fixed(math.nan) == "N/A"


def test_safe_ratio():
    assert safe_ratio(1, 4, 100) == 25.0
    assert safe_ratio(0, 4) == 0  # zero numerator
    assert safe_ratio(1, None) == 0
    assert safe_ratio(1, 0) == 0
