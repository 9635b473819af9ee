from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd
import yfinance as yf

COLUMN_MAP = {
    "Date": "date",
    "Datetime": "date",
    "Open": "open",
    "High": "high",
    "Low": "low",
    "Close": "close",
    "Adj Close": "adj_close",
    "Volume": "volume",
}


def _flatten(df: pd.DataFrame) -> pd.DataFrame:
    # yf.download returns (field, ticker) columns even for a single ticker
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        df.columns = df.columns.get_level_values(0)
    return df


def format_historical_data(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    """OHLCV frame indexed by date -> ascending records with ``value`` mirroring close."""
    if df is None or df.empty:
        return []
    out = _flatten(df).reset_index().rename(columns=COLUMN_MAP)
    out = out.dropna(subset=["close"]).sort_values("date")
    records = []
    for row in out.itertuples(index=False):
        stamp = pd.Timestamp(row.date)
        date = stamp.strftime("%Y-%m-%d") if stamp == stamp.normalize() else stamp.isoformat()
        close = float(row.close)
        records.append({
            "date": date,
            "value": close,
            "open": float(row.open),
            "high": float(row.high),
            "low": float(row.low),
            "close": close,
            "volume": float(row.volume) if pd.notna(row.volume) else 0.0,
        })
    return records


def four_hour_bars(hourly: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Every fourth hourly bar, starting with the first."""
    return [{"date": bar["date"], "value": bar["value"]} for bar in hourly[::4]]


def load_history(ticker: str, days: int = 365, interval: str = "1d") -> List[Dict[str, Any]]:
    end = datetime.now()
    start = end - timedelta(days=days)
    df = yf.download(ticker, start=start, end=end, interval=interval, progress=False, auto_adjust=True)
    records = format_historical_data(df)
    if not records:
        print(f"⚠️ No historical data for {ticker}")
    return records


def load_four_hour(ticker: str, days: int = 40) -> List[Dict[str, Any]]:
    return four_hour_bars(load_history(ticker, days=days, interval="1h"))


def load_fundamentals(ticker: str) -> Dict[str, Any]:
    """Raw Yahoo ``info`` dict; pass to ``build_fundamentals_payload``."""
    info = yf.Ticker(ticker).info or {}
    if not info:
        print(f"⚠️ No fundamentals for {ticker}")
    return dict(info)

