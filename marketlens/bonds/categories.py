from __future__ import annotations
import re
from typing import Dict, Optional

BOND_CATEGORIES: Dict[str, Dict] = {
    "TREASURY": {
        "name": "Treasury Bonds",
        "description": "U.S. Government backed securities",
        "symbols": {
            "GS30": "30-Year Treasury Rate",
            "GS20": "20-Year Treasury Rate",
            "GS10": "10-Year Treasury Rate",
            "GS7": "7-Year Treasury Rate",
            "GS5": "5-Year Treasury Rate",
            "GS3": "3-Year Treasury Rate",
            "GS2": "2-Year Treasury Rate",
            "GS1": "1-Year Treasury Rate",
            "GS6M": "6-Month Treasury Rate",
            "GS3M": "3-Month Treasury Rate",
            "GS1M": "1-Month Treasury Rate",
            "TB3MS": "3-Month Treasury Bill Secondary Market Rate",
            "DTB3": "3-Month Treasury Bill",
            "DTB6": "6-Month Treasury Bill",
            "T10Y2Y": "10-Year Treasury Constant Maturity Minus 2-Year Treasury Constant Maturity",
            "T10Y3M": "10-Year Treasury Constant Maturity Minus 3-Month Treasury Bill",
        },
    },
    "CORPORATE": {
        "name": "Corporate Bonds",
        "description": "Company-issued debt securities with varying credit ratings",
        "symbols": {
            "AAA": "Moody's Seasoned Aaa Corporate Bond Yield",
            "BAA": "Moody's Seasoned Baa Corporate Bond Yield",
            "BAMLC0A0CM": "ICE BofA US Corporate Index",
            "BAMLH0A0HYM": "ICE BofA US High Yield Index",
            "AAA10Y": "Moody's Aaa Corporate Bond Minus 10-Year Treasury",
            "BAA10Y": "Moody's Baa Corporate Bond Minus 10-Year Treasury",
        },
    },
    "MUNICIPAL": {
        "name": "Municipal Bonds",
        "description": "State and local government debt instruments",
        "symbols": {
            "MUNI20Y": "20-Year Municipal Bond Yield",
            "MUNI10Y": "10-Year Municipal Bond Yield",
            "MUNI5Y": "5-Year Municipal Bond Yield",
            "MUNI10Y10Y": "10-Year Municipal Bond Minus 10-Year Treasury",
        },
    },
    "INTERNATIONAL": {
        "name": "International Bonds",
        "description": "Foreign government and corporate debt securities",
        "symbols": {
            "IRLTLT01": "Ireland 10-Year Government Bond",
            "JPNLTLT01": "Japan 10-Year Government Bond",
            "GBRLTLT01": "United Kingdom 10-Year Government Bond",
            "DEULTLT01": "Germany 10-Year Government Bond",
        },
    },
}

CATEGORY_METADATA: Dict[str, Dict] = {
    "TREASURY": {"riskLevel": "Lowest", "liquidityLevel": "Highest", "benchmarkUse": True},
    "CORPORATE": {"riskLevel": "Moderate to High", "liquidityLevel": "Moderate", "benchmarkUse": False},
    "MUNICIPAL": {"riskLevel": "Low to Moderate", "liquidityLevel": "Moderate", "taxAdvantaged": True},
    "INTERNATIONAL": {"riskLevel": "Moderate to High", "liquidityLevel": "Varies", "currencyExposure": True},
}

BOND_SYMBOLS: Dict[str, str] = {
    sym: name for cat in BOND_CATEGORIES.values() for sym, name in cat["symbols"].items()
}

# Curve points in maturity order
CURVE_SERIES = ["GS1M", "GS3M", "GS6M", "GS1", "GS2", "GS5", "GS10", "GS30"]

_MATURITY = re.compile(r"^GS(\d+)(M?)$")


def category_of(symbol: str) -> Optional[str]:
    for key, cat in BOND_CATEGORIES.items():
        if symbol in cat["symbols"]:
            return key
    return None


def bond_name(symbol: str) -> str:
    return BOND_SYMBOLS.get(symbol, symbol)


def maturity_years(symbol: str) -> float:
    """Years to maturity from a GS<n> or GS<n>M series id; anything else counts as 10 years."""
    m = _MATURITY.match(symbol or "")
    if not m:
        return 10.0
    n = int(m.group(1))
    if n == 0:
        return 10.0
    return n / 12 if m.group(2) else float(n)
