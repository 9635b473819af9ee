"""
Fixed-income math over yields quoted in percent.

Prices use a 1000 face value. Coupon schedules are semi-annual. Functions
return None when the input series is too short to say anything.
"""
from __future__ import annotations
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from marketlens.signals import indicators

FACE = 1000.0
PERIODS_PER_YEAR = 2
TRADING_DAYS = 252
Z_SCORES = {0.95: 1.645, 0.99: 2.326}


def price_from_yield(yield_pct: float) -> float:
    """Discount-style quote used across the bond views: 1000 * (1 - y/100)."""
    return FACE * (1 - yield_pct / 100)


def price_from_coupon(yield_pct: float, years: float, coupon_pct: float) -> float:
    r = yield_pct / (100 * PERIODS_PER_YEAR)
    n = int(round(years * PERIODS_PER_YEAR))
    c = coupon_pct / 100 * FACE / PERIODS_PER_YEAR
    if r == 0:
        return c * n + FACE
    return sum(c / (1 + r) ** i for i in range(1, n + 1)) + FACE / (1 + r) ** n


def implied_coupon(yield_pct: float, price: float, years: float) -> float:
    """Annual coupon rate (percent) that reprices the bond to ``price`` at ``yield_pct``."""
    r = yield_pct / (100 * PERIODS_PER_YEAR)
    n = years * PERIODS_PER_YEAR
    if r == 0:
        return (price - FACE) / n * PERIODS_PER_YEAR / FACE * 100 if n else 0.0
    discount = (1 + r) ** -n
    annuity = (1 - discount) / r
    coupon = (price - FACE * discount) / annuity
    return coupon * PERIODS_PER_YEAR / FACE * 100


def zero_rate(yield_pct: float, years: float) -> Optional[float]:
    price = price_from_yield(yield_pct)
    if price <= 0 or years <= 0:
        return None
    return ((FACE / price) ** (1 / years) - 1) * 100


def forward_rate(yield1: float, years1: float, yield2: float, years2: float) -> float:
    return ((1 + yield2 / 100) ** years2 / (1 + yield1 / 100) ** years1 - 1) * 100


def real_yield(nominal_pct: float, inflation_pct: float) -> float:
    """Fisher real yield against an inflation expectation."""
    return ((1 + nominal_pct / 100) / (1 + inflation_pct / 100) - 1) * 100


def breakeven_inflation(nominal_pct: float, tips_pct: float) -> float:
    return nominal_pct - tips_pct


def _cash_flows(yield_pct: float, years: float, coupon_pct: float):
    y = yield_pct / (100 * PERIODS_PER_YEAR)
    periods = int(round(years * PERIODS_PER_YEAR))
    coupon = FACE * coupon_pct / (100 * PERIODS_PER_YEAR)
    flows = [(i, coupon * (1 + y) ** -i) for i in range(1, periods + 1)]
    flows.append((periods, FACE * (1 + y) ** -periods))
    return y, flows


def modified_duration(yield_pct: float, years: float, coupon_pct: float) -> float:
    y, flows = _cash_flows(yield_pct, years, coupon_pct)
    pv = sum(f for _, f in flows)
    macaulay = sum(i / PERIODS_PER_YEAR * f for i, f in flows) / pv
    return macaulay / (1 + y)


def convexity(yield_pct: float, years: float, coupon_pct: float) -> float:
    y, flows = _cash_flows(yield_pct, years, coupon_pct)
    pv = sum(f for _, f in flows)
    weighted = sum(i * (i + 1) * f for i, f in flows)
    return weighted / (pv * (1 + y) ** 2 * 2)


def key_rate_duration(yield_pct: float, years: float, coupon_pct: float, key_years: float) -> float:
    """Price sensitivity per basis point to a shift that decays away from ``key_years``."""
    base = price_from_coupon(yield_pct, years, coupon_pct)
    shift = 0.01 if years == key_years else 0.01 * math.exp(-abs(years - key_years) / 2)
    shifted = price_from_coupon(yield_pct + shift, years, coupon_pct)
    return -(shifted - base) / (base * 0.0001)


def _changes(yields: Sequence[float]) -> np.ndarray:
    return np.diff(np.asarray(yields, dtype=float))


def value_at_risk(
    yields: Sequence[float], confidence: float = 0.95, holding_period: int = 10
) -> Optional[float]:
    """Parametric VaR of yield changes; needs 30 observations."""
    if len(yields) < 30:
        return None
    z = Z_SCORES.get(confidence, Z_SCORES[0.99])
    std = float(_changes(yields).std(ddof=1))
    return std * z * math.sqrt(holding_period)


def historical_volatility(yields: Sequence[float], annualize: bool = True) -> Optional[float]:
    if len(yields) < 3:
        return None
    daily = float(_changes(yields).std(ddof=1))
    return daily * math.sqrt(TRADING_DAYS) if annualize else daily


def moving_averages(values: Sequence[float], periods=(20, 50, 200)) -> Dict[str, Optional[float]]:
    return {f"MA{p}": indicators.sma(list(values), p) for p in periods}


def total_return(start_price: float, end_price: float, coupon_rate: float, years: float = 1) -> Dict[str, float]:
    """Price, income and total return in percent; ``coupon_rate`` is a fraction."""
    income = coupon_rate * start_price * years
    return {
        "totalReturn": (end_price - start_price + income) / start_price * 100,
        "priceReturn": (end_price - start_price) / start_price * 100,
        "incomeReturn": income / start_price * 100,
    }


def yield_technicals(yields: Sequence[float]) -> Dict[str, Optional[object]]:
    series = list(yields)
    return {
        "rsi": indicators.rsi(series),
        "bollingerBands": indicators.bollinger(series),
        "macd": indicators.macd_full(series),
    }


def correlation(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Pearson correlation; None for empty or mismatched series, 0 when either side is flat."""
    if not a or not b or len(a) != len(b):
        return None
    if len(a) < 2:
        return 0.0
    x = np.asarray(a, dtype=float)
    y = np.asarray(b, dtype=float)
    if x.std() == 0 or y.std() == 0:
        return 0.0
    return float(np.corrcoef(x, y)[0, 1])


def curve_metrics(points: List[Dict[str, Optional[float]]]) -> Dict[str, object]:
    """Steepness, curvature and inversion over curve points ordered by maturity."""
    valid = [p for p in points if p.get("yield") is not None]
    if not valid:
        return {"steepness": None, "curvature": None, "inverted": None}
    short, long_ = valid[0]["yield"], valid[-1]["yield"]
    steep = long_ - short
    belly = valid[len(valid) // 2]["yield"]
    return {
        "steepness": steep,
        "curvature": belly - (short + long_) / 2,
        "inverted": steep < 0,
    }


def flight_to_quality(treasury_pct: Optional[float], dividend_pct: Optional[float]) -> Dict[str, Optional[object]]:
    if treasury_pct is None or dividend_pct is None:
        return {"spread": None, "active": None}
    return {"spread": treasury_pct - dividend_pct, "active": treasury_pct < dividend_pct}
