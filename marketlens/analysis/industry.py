from __future__ import annotations
from typing import Any, Dict, Optional

from marketlens.core.formatting import to_float


ANALYSIS_THRESHOLDS = {
    "VALUE": {"PE_RATIO": 15, "ROE": 0.15, "OPERATING_MARGIN": 0.20},
    "GROWTH": {"REVENUE": 0.10, "EARNINGS": 0.15},
    "RISK": {"DEBT_TO_EQUITY": 1.0, "CURRENT_RATIO": 1.5, "BETA": 1.2},
}

VALUATION_THRESHOLDS = {
    "PE_RATIO": {"DEEP_VALUE": 10, "VALUE": 15, "GROWTH": 25, "HIGH_GROWTH": 35},
    "PRICE_TO_BOOK": {"VALUE": 1.5, "FAIR": 3, "PREMIUM": 5},
    "MARGINS": {"LOW": 0.10, "MEDIUM": 0.20, "HIGH": 0.30, "EXCEPTIONAL": 0.40},
    "GROWTH_RATES": {"SLOW": 0.05, "MODERATE": 0.10, "FAST": 0.20, "EXCEPTIONAL": 0.30},
    "MOAT_FACTORS": {
        "NETWORK_EFFECTS": {"USER_GROWTH_RATE": 0.20, "PLATFORM_REVENUE": 1e9},
        "BRAND_VALUE": {"GROSS_MARGIN": 0.40},
        "COST_ADVANTAGES": {"OPERATING_MARGIN_PREMIUM": 0.05, "SCALE_THRESHOLD": 5e9},
    },
}

INDUSTRY_METRICS: Dict[str, Dict[str, float]] = {
    "TECH": {
        "avgGrossMargin": 0.65,
        "avgOperatingMargin": 0.25,
        "avgRevenueGrowth": 0.15,
        "avgPERatio": 25,
    },
    "CONSUMER": {
        "avgGrossMargin": 0.40,
        "avgOperatingMargin": 0.15,
        "avgRevenueGrowth": 0.08,
        "avgPERatio": 20,
    },
    "HEALTHCARE": {
        "avgGrossMargin": 0.55,
        "avgOperatingMargin": 0.20,
        "avgRevenueGrowth": 0.10,
        "avgPERatio": 22,
    },
    "FINANCIAL": {
        "avgGrossMargin": 0.35,
        "avgOperatingMargin": 0.30,
        "avgRevenueGrowth": 0.07,
        "avgPERatio": 15,
    },
}

INDUSTRY_AVG_REVENUE = {
    "TECH": 50e9,
    "CONSUMER": 30e9,
    "HEALTHCARE": 40e9,
    "FINANCIAL": 35e9,
}
DEFAULT_AVG_REVENUE = 35e9


def _gt(value: Any, threshold: float) -> bool:
    v = to_float(value)
    return v is not None and v > threshold


def detect_industry(fd: Dict[str, Any]) -> str:
    """Rough sector bucket from margin and growth profile."""
    if _gt(fd.get("grossMargins"), 0.60):
        return "TECH"
    if _gt(fd.get("operatingMargins"), 0.25):
        return "FINANCIAL"
    if _gt(fd.get("revenueGrowth"), 0.12):
        return "HEALTHCARE"
    return "CONSUMER"


def industry_metric(fd: Dict[str, Any], metric: str) -> Optional[float]:
    return INDUSTRY_METRICS.get(detect_industry(fd), {}).get(metric)


def industry_avg_revenue(fd: Dict[str, Any]) -> float:
    return INDUSTRY_AVG_REVENUE.get(detect_industry(fd), DEFAULT_AVG_REVENUE)


def market_leadership(fd: Dict[str, Any]) -> str:
    avg = industry_avg_revenue(fd)
    revenue = to_float(fd.get("totalRevenue")) or 0.0
    if revenue > avg * 2:
        return "Dominant"
    if revenue > avg:
        return "Strong"
    return "Moderate"


def compare_to_industry(fd: Dict[str, Any], metric: str, value: Any) -> str:
    avg = industry_metric(fd, metric)
    v = to_float(value)
    if not avg or v is None:
        return "Industry comparison not available"
    pct = (v - avg) / avg * 100
    if abs(pct) < 5:
        return "In line with industry average"
    direction = "Above" if pct > 0 else "Below"
    return f"{direction} industry average by {abs(pct):.1f}%"
