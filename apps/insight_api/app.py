from fastapi import FastAPI, HTTPException, Query
import asyncio
import pandas as pd
from typing import Any, Dict, Optional

from dotenv import load_dotenv, find_dotenv

from marketlens.analysis.framework import SECTIONS, analyze_asset
from marketlens.bonds.categories import BOND_CATEGORIES
from marketlens.bonds.service import BondAnalyzer
from marketlens.data.providers import DataProvider
from marketlens.signals.indicators import TechnicalAnalyzer, ohlcv

load_dotenv(find_dotenv())

app = FastAPI(title="Market Insight API")

provider = DataProvider()
bonds = BondAnalyzer()


def _check_days(days: int) -> int:
    if days < 1 or days > 3650:
        raise HTTPException(400, "days must be between 1 and 3650")
    return days


def _symbol(value: str) -> str:
    value = (value or "").strip().upper()
    if not value:
        raise HTTPException(400, "Symbol is required")
    return value


def _tail(series: pd.Series, n: int = 60):
    return [None if pd.isna(x) else float(x) for x in series.tail(n).tolist()]


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": "insight_api"}


@app.get("/sections")
async def sections():
    return {"sections": [{"id": s.id, "title": s.title} for s in SECTIONS]}


@app.get("/analyze")
async def analyze(
    ticker: str = Query(..., description="Stock ticker symbol"),
    days: int = Query(365),
    timeframe: Optional[str] = Query(None, description="short, medium or long"),
):
    """Full investment analysis: technicals, patterns and every analysis section."""
    symbol = _symbol(ticker)
    _check_days(days)
    try:
        history, raw, quote = await asyncio.gather(
            provider.history(symbol, days),
            provider.fundamentals(symbol),
            provider.quote(symbol),
        )
        result = analyze_asset(symbol, history, raw, timeframe=timeframe)
        result["quote"] = quote
        return result
    except Exception as e:
        raise HTTPException(500, f"Analysis failed: {str(e)}")


@app.get("/technicals")
async def technicals(ticker: str = Query(...), days: int = Query(365)):
    """Indicator snapshot plus sparkline series and pivot levels."""
    symbol = _symbol(ticker)
    _check_days(days)
    try:
        history = await provider.history(symbol, days)
        if not history:
            raise HTTPException(404, f"No price history for {symbol}")
        result = analyze_asset(symbol, history, include_sections=False)

        df = TechnicalAnalyzer.compute_indicators(ohlcv(history))
        support, resistance = TechnicalAnalyzer.pivot_levels(df["close"])
        result["levels"] = {"support": support, "resistance": resistance}
        result["series"] = {
            "close": _tail(df["close"]),
            "rsi": _tail(df["rsi"]),
            "ma50": _tail(df["ma50"]),
            "ma200": _tail(df["ma200"]),
        }
        return result
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(500, f"Analysis failed: {str(e)}")


@app.get("/crypto/analyze")
async def crypto_analyze(symbol: str = Query(...), days: int = Query(90)):
    sym = _symbol(symbol)
    _check_days(days)
    try:
        history, quote = await asyncio.gather(
            provider.crypto_history(sym, days), provider.crypto_quote(sym)
        )
        result = analyze_asset(sym, history, include_sections=False)
        result["quote"] = quote
        return result
    except Exception as e:
        raise HTTPException(500, f"Analysis failed: {str(e)}")


@app.get("/bonds/categories")
async def bond_categories() -> Dict[str, Any]:
    return BOND_CATEGORIES


@app.get("/bonds/analytics")
async def bond_analytics(symbol: str = Query(...)):
    sym = _symbol(symbol)
    try:
        return await asyncio.to_thread(bonds.full_analytics, sym)
    except KeyError as e:
        raise HTTPException(404, str(e).strip("'\""))
    except Exception as e:
        raise HTTPException(500, f"Analysis failed: {str(e)}")


@app.get("/bonds/curve")
async def bond_curve():
    try:
        curve = await asyncio.to_thread(bonds.yield_curve)
        curve["flightToQuality"] = await asyncio.to_thread(bonds.flight_to_quality)
        return curve
    except Exception as e:
        raise HTTPException(500, f"Analysis failed: {str(e)}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
