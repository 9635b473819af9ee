from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from marketlens.bonds import analytics as ba
from marketlens.bonds.categories import (
    BOND_CATEGORIES,
    BOND_SYMBOLS,
    CATEGORY_METADATA,
    CURVE_SERIES,
    bond_name,
    category_of,
    maturity_years,
)
from marketlens.core.formatting import format_fixed
from marketlens.data.providers import FredClient

INFLATION_SERIES = "T5YIEM"
TIPS_SERIES = "FII10"
DIVIDEND_SERIES = "SP500DY"
EQUITY_SERIES = "SP500"
BENCHMARK = "GS10"


def _pct(value: Optional[float]) -> str:
    return format_fixed(value, 2, "%")


def _tail_pair(a: List[float], b: List[float]):
    n = min(len(a), len(b))
    return (a[-n:], b[-n:]) if n else ([], [])


class BondAnalyzer:
    """Bond analytics over FRED yield series."""

    def __init__(self, fred: Optional[FredClient] = None):
        self.fred = fred or FredClient()

    @staticmethod
    def check_symbol(symbol: str) -> str:
        if symbol not in BOND_SYMBOLS:
            raise KeyError(f"Unknown bond symbol: {symbol}")
        return symbol

    def historical(self, symbol: str, days: int = 365) -> List[Dict[str, Any]]:
        out = []
        for obs in self.fred.observations(symbol, start=self._start(days)):
            y = obs["value"]
            if y is None:
                continue
            price = ba.price_from_yield(y)
            out.append({"date": obs["date"], "price": price, "value": price, "yield": y})
        return out

    @staticmethod
    def _start(days: int) -> str:
        return (datetime.now().date() - timedelta(days=days)).isoformat()

    def bond_data(self, symbol: str) -> Dict[str, Any]:
        """Latest quote, implied coupon and risk measures for one series."""
        self.check_symbol(symbol)
        history = self.historical(symbol)
        years = maturity_years(symbol)
        category = category_of(symbol)
        meta = CATEGORY_METADATA.get(category, {})
        overview: Dict[str, Any] = {
            "name": bond_name(symbol),
            "maturityYears": years,
            "paymentFrequency": "Semi-Annual",
            "category": BOND_CATEGORIES[category]["name"] if category else "N/A",
            "riskLevel": meta.get("riskLevel", "N/A"),
            "benchmark": "Primary Treasury Benchmark" if symbol == BENCHMARK else "Treasury Security",
        }
        if not history:
            overview.update({"lastUpdated": None, "yieldToMaturity": "N/A", "couponRate": "N/A"})
            return {"symbol": symbol, "price": None, "yield": None, "change": 0.0, "changePercent": 0.0, "overview": overview}

        latest = history[-1]
        y, price = latest["yield"], latest["price"]
        change = change_pct = 0.0
        if len(history) > 1:
            prev = history[-2]["price"]
            change = price - prev
            change_pct = change / prev * 100 if prev else 0.0

        coupon = ba.implied_coupon(y, price, years)
        yields = [h["yield"] for h in history]
        inflation = self.fred.latest(INFLATION_SERIES)
        tips = self.fred.latest(TIPS_SERIES)
        overview.update({
            "lastUpdated": latest["date"],
            "yieldToMaturity": _pct(y),
            "couponRate": _pct(coupon),
            "modifiedDuration": format_fixed(ba.modified_duration(y, years, coupon)),
            "convexity": format_fixed(ba.convexity(y, years, coupon), 4),
            "zeroRate": _pct(ba.zero_rate(y, years)),
            "valueAtRisk95": _pct(ba.value_at_risk(yields)),
            "realYield": _pct(ba.real_yield(y, inflation) if inflation is not None else None),
            "breakEvenInflation": _pct(ba.breakeven_inflation(y, tips) if tips is not None else None),
        })
        return {
            "symbol": symbol,
            "price": round(price, 2),
            "yield": round(y, 2),
            "change": round(change, 2),
            "changePercent": round(change_pct, 2),
            "coupon": coupon,
            "overview": overview,
        }

    def yield_curve(self) -> Dict[str, Any]:
        points = [
            {"maturity": sid.replace("GS", ""), "years": maturity_years(sid), "yield": self.fred.latest(sid)}
            for sid in CURVE_SERIES
        ]
        valid = [p for p in points if p["yield"] is not None]
        return {"yields": valid, "metrics": ba.curve_metrics(valid)}

    def flight_to_quality(self) -> Dict[str, Any]:
        return ba.flight_to_quality(self.fred.latest(BENCHMARK), self.fred.latest(DIVIDEND_SERIES))

    def correlation_with(self, symbol: str, other: str, days: int = 365) -> Optional[float]:
        a, b = _tail_pair(self.fred.values(symbol, days), self.fred.values(other, days))
        return ba.correlation(a, b)

    def full_analytics(self, symbol: str) -> Dict[str, Any]:
        """Quote, risk, statistics, performance, technicals, curve and cross-market view as display strings."""
        data = self.bond_data(symbol)
        history = self.historical(symbol)
        yields = [h["yield"] for h in history]
        prices = [h["value"] for h in history]
        years = maturity_years(symbol)

        if data["yield"] is None:
            risk = {"modifiedDuration": "N/A", "valueAtRisk95": "N/A", "zeroRate": "N/A"}
            perf = {"totalReturn": "N/A", "priceReturn": "N/A", "incomeReturn": "N/A"}
        else:
            y, coupon = yields[-1], data["coupon"]
            risk = {
                "modifiedDuration": format_fixed(ba.modified_duration(y, years, coupon)),
                "valueAtRisk95": _pct(ba.value_at_risk(yields)),
                "zeroRate": _pct(ba.zero_rate(y, years)),
                "keyRateDuration": format_fixed(ba.key_rate_duration(y, years, coupon, years)),
            }
            ret = ba.total_return(prices[0], prices[-1], coupon / 100, 1)
            perf = {k: _pct(v) for k, v in ret.items()}

        mas = ba.moving_averages(yields)
        tech = ba.yield_technicals(yields)
        bands = tech["bollingerBands"] or {}
        macd = tech["macd"] or {}
        curve = self.yield_curve()["metrics"]
        ftq = self.flight_to_quality()
        inverted = curve["inverted"]
        active = ftq["active"]

        return {
            "symbol": symbol,
            "quote": {k: data[k] for k in ("price", "yield", "change", "changePercent")},
            "overview": data["overview"],
            "riskMetrics": risk,
            "statistics": {
                "volatility": _pct(ba.historical_volatility(yields)),
                "movingAverages": {k: _pct(v) for k, v in mas.items()},
            },
            "performance": perf,
            "technicalAnalysis": {
                "rsi": format_fixed(tech["rsi"]),
                "bollingerBands": {k: _pct(bands.get(k)) for k in ("upper", "middle", "lower")},
                "macd": {
                    "value": format_fixed(macd.get("macd")),
                    "signal": format_fixed(macd.get("signal")),
                    "histogram": format_fixed(macd.get("histogram")),
                },
            },
            "marketAnalysis": {
                "yieldCurve": {
                    "steepness": _pct(curve["steepness"]),
                    "curvature": _pct(curve["curvature"]),
                    "inverted": "N/A" if inverted is None else ("Yes" if inverted else "No"),
                },
                "flightToQuality": {
                    "spread": _pct(ftq["spread"]),
                    "active": "N/A" if active is None else ("Yes" if active else "No"),
                },
            },
            "comparativeAnalysis": {
                "correlationWithSP500": format_fixed(self.correlation_with(symbol, EQUITY_SERIES)),
                "correlationWith10Y": (
                    format_fixed(self.correlation_with(symbol, BENCHMARK)) if symbol != BENCHMARK else "N/A"
                ),
            },
        }
