import math
import os
import sys

import pytest

# Ensure repo root is on sys.path for imports like 'marketlens.*'
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture
def raw_fundamentals():
    return {
        "currentPrice": 100.0,
        "marketCap": 2.0e12,
        "fiftyTwoWeekLow": 80.0,
        "fiftyTwoWeekHigh": 120.0,
        "grossMargins": 0.45,
        "operatingMargins": 0.30,
        "profitMargins": 0.22,
        "revenueGrowth": 0.08,
        "earningsGrowth": 0.12,
        "returnOnEquity": 0.35,
        "debtToEquity": 150.0,
        "currentRatio": 0.9,
        "forwardPE": 28.0,
        "trailingPE": 30.0,
        "beta": 1.3,
        "recommendationMean": 1.9,
        "recommendationKey": "buy",
        "targetMedianPrice": 125.0,
        "heldPercentInstitutions": 0.62,
        "totalRevenue": 3.8e11,
        "totalAssets": 3.5e11,
        "totalCurrentLiabilities": 1.5e11,
        "ebit": 1.2e11,
        "netIncome": 9.0e10,
        "depreciation": 1.1e10,
        "capitalExpenditures": 1.0e10,
    }


@pytest.fixture
def payload(raw_fundamentals):
    from marketlens.analysis.payload import build_fundamentals_payload

    return build_fundamentals_payload(raw_fundamentals)


def make_history(closes, start="2024-01-01"):
    import pandas as pd

    dates = pd.bdate_range(start=start, periods=len(closes))
    return [
        {
            "date": d.strftime("%Y-%m-%d"),
            "value": float(c),
            "close": float(c),
            "open": float(c),
            "high": float(c) * 1.01,
            "low": float(c) * 0.99,
            "volume": 1_000_000.0 + i * 1000,
        }
        for i, (d, c) in enumerate(zip(dates, closes))
    ]


@pytest.fixture
def trending_history():
    closes = [100 + i * 0.5 + 2 * math.sin(i / 3) for i in range(260)]
    return make_history(closes)
