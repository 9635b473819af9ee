from __future__ import annotations
import math
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(v):
        return None
    return v


def format_percent(value: Any) -> str:
    v = to_float(value)
    if v is None:
        return "N/A"
    return f"{v * 100:.2f}%"


def format_currency(value: Any) -> str:
    """Dollar amount in billions, e.g. 1.5e9 -> "$1.50B"."""
    v = to_float(value)
    if v is None:
        return "N/A"
    return f"${v / 1e9:.2f}B"


def format_number(value: Any) -> str:
    v = to_float(value)
    if v is None:
        return "N/A"
    if v >= 1e9:
        return f"{v / 1e9:.2f}B"
    if v >= 1e6:
        return f"{v / 1e6:.2f}M"
    if v >= 1e3:
        return f"{v / 1e3:.2f}K"
    return f"{v:.2f}"


def format_fixed(value: Any, decimals: int = 2, suffix: str = "") -> str:
    v = to_float(value)
    if v is None:
        return "N/A"
    return f"{v:.{decimals}f}{suffix}"


def safe_ratio(numerator: Any, denominator: Any, multiplier: float = 1) -> float:
    num = to_float(numerator)
    den = to_float(denominator)
    if not num or not den:
        return 0
    return (num / den) * multiplier
