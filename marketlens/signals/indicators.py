from __future__ import annotations
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

PriceInput = Union[pd.DataFrame, pd.Series, Sequence[Any]]


def _price_of(point: Any) -> float:
    if isinstance(point, dict):
        for key in ("value", "close", "price"):
            if point.get(key) is not None:
                return float(point[key])
        return float("nan")
    return float(point)


def closes(data: PriceInput) -> np.ndarray:
    """Close prices from a frame, a series, price records or plain numbers."""
    if isinstance(data, pd.DataFrame):
        col = "close" if "close" in data.columns else "value"
        return data[col].astype(float).to_numpy()
    if isinstance(data, pd.Series):
        return data.astype(float).to_numpy()
    return np.array([_price_of(p) for p in data], dtype=float)


def ohlcv(data: PriceInput) -> pd.DataFrame:
    """Normalize input into a frame with high, low, close and volume columns."""
    if isinstance(data, pd.DataFrame):
        df = data.copy()
        if "close" not in df.columns and "value" in df.columns:
            df["close"] = df["value"]
    else:
        rows = list(data) if not isinstance(data, pd.Series) else data.tolist()
        if rows and isinstance(rows[0], dict):
            df = pd.DataFrame(rows)
            if "close" not in df.columns or df["close"].isna().all():
                df["close"] = df.get("value")
        else:
            df = pd.DataFrame({"close": [float(r) for r in rows]})
    df["close"] = df["close"].astype(float)
    for col in ("high", "low"):
        if col not in df.columns:
            df[col] = df["close"]
        df[col] = df[col].astype(float).fillna(df["close"])
    if "volume" not in df.columns:
        df["volume"] = 0.0
    df["volume"] = df["volume"].astype(float).fillna(0.0)
    return df[["high", "low", "close", "volume"]].reset_index(drop=True)


# Core indicators

def sma(data: PriceInput, period: int) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period or period <= 0:
        return None
    return float(prices[-period:].mean())


def ema_series(data: PriceInput, period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first ``period`` values; one value per bar from period-1."""
    prices = closes(data)
    if len(prices) < period or period <= 0:
        return np.array([], dtype=float)
    k = 2 / (period + 1)
    out = [float(prices[:period].mean())]
    for price in prices[period:]:
        out.append((price - out[-1]) * k + out[-1])
    return np.array(out, dtype=float)


def ema(data: PriceInput, period: int) -> Optional[float]:
    series = ema_series(data, period)
    return float(series[-1]) if len(series) else None


def rsi(data: PriceInput, period: int = 14) -> Optional[float]:
    """RSI from the simple mean of the last ``period`` gains and losses."""
    prices = closes(data)
    if len(prices) < period + 1:
        return None
    changes = np.diff(prices)[-period:]
    avg_gain = np.where(changes > 0, changes, 0.0).mean()
    avg_loss = np.where(changes < 0, -changes, 0.0).mean()
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def macd(data: PriceInput) -> Optional[float]:
    prices = closes(data)
    if len(prices) < 26:
        return None
    return ema(prices, 12) - ema(prices, 26)


def bollinger(data: PriceInput, period: int = 20, width: float = 2.0) -> Optional[Dict[str, float]]:
    prices = closes(data)
    if len(prices) < period:
        return None
    window = prices[-period:]
    mid = float(window.mean())
    std = float(window.std(ddof=0))
    return {"upper": mid + width * std, "middle": mid, "lower": mid - width * std}


def true_ranges(data: PriceInput) -> np.ndarray:
    df = ohlcv(data)
    prev_close = df["close"].shift(1)
    tr = pd.concat(
        [
            df["high"] - df["low"],
            (df["high"] - prev_close).abs(),
            (df["low"] - prev_close).abs(),
        ],
        axis=1,
    ).max(axis=1)
    return tr.iloc[1:].to_numpy()


def atr(data: PriceInput, period: int = 14) -> Optional[float]:
    """Mean of the last `period` true ranges; `period` bars give period - 1 of them."""
    tr = true_ranges(data)
    if len(tr) + 1 < period or len(tr) == 0:
        return None
    return float(tr[-period:].mean())


def obv(data: PriceInput) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < 2:
        return None
    direction = np.sign(df["close"].diff().fillna(0.0))
    return float((direction * df["volume"]).sum())


# Trend

def wma(data: PriceInput, period: int) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period or period <= 0:
        return None
    weights = np.arange(1, period + 1, dtype=float)
    return float((prices[-period:] * weights).sum() / weights.sum())


def dema(data: PriceInput, period: int = 14) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period * 2:
        return None
    e1 = ema_series(prices, period)
    e2 = ema_series(e1, period)
    return float(2 * e1[-1] - e2[-1])


def tema(data: PriceInput, period: int = 14) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period * 3:
        return None
    e1 = ema_series(prices, period)
    e2 = ema_series(e1, period)
    e3 = ema_series(e2, period)
    return float(3 * e1[-1] - 3 * e2[-1] + e3[-1])


def hma(data: PriceInput, period: int = 14) -> Optional[float]:
    """Hull moving average: WMA(2*WMA(n/2) - WMA(n), sqrt(n))."""
    prices = closes(data)
    half = period // 2
    root = int(math.sqrt(period))
    if half < 1 or len(prices) < period + root - 1:
        return None
    diffs = []
    for end in range(len(prices) - root + 1, len(prices) + 1):
        window = prices[:end]
        diffs.append(2 * wma(window, half) - wma(window, period))
    return wma(diffs, root)


def vwap(data: PriceInput) -> Optional[float]:
    df = ohlcv(data)
    total = df["volume"].sum()
    if df.empty or total == 0:
        return None
    return float((df["close"] * df["volume"]).sum() / total)


def psar(data: PriceInput, step: float = 0.02, max_step: float = 0.2) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < 3:
        return None
    highs = df["high"].to_numpy()
    lows = df["low"].to_numpy()
    sar = lows[0]
    ep = highs[0]
    af = step
    up = True
    for i in range(1, len(df)):
        if up:
            sar = sar + af * (ep - sar)
            if highs[i] > ep:
                ep = highs[i]
                af = min(af + step, max_step)
            if lows[i] < sar:
                up, af, ep = False, step, lows[i]
        else:
            sar = sar - af * (sar - ep)
            if lows[i] < ep:
                ep = lows[i]
                af = min(af + step, max_step)
            if highs[i] > sar:
                up, af, ep = True, step, highs[i]
    return float(sar)


# Momentum

def macd_full(
    data: PriceInput, fast: int = 12, slow: int = 26, signal: int = 9
) -> Optional[Dict[str, float]]:
    prices = closes(data)
    if len(prices) < slow + signal:
        return None
    fast_e = ema_series(prices, fast)[slow - fast:]
    slow_e = ema_series(prices, slow)
    line = fast_e - slow_e
    sig = ema_series(line, signal)
    return {
        "macd": float(line[-1]),
        "signal": float(sig[-1]),
        "histogram": float(line[-1] - sig[-1]),
    }


def wilder_rsi(data: PriceInput, period: int = 14) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period + 1:
        return None
    changes = np.diff(prices)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)
    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    for g, l in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + g) / period
        avg_loss = (avg_loss * (period - 1) + l) / period
    if avg_loss == 0:
        return 100.0
    return float(100 - 100 / (1 + avg_gain / avg_loss))


def stochastic(
    data: PriceInput, period: int = 14, smooth_k: int = 3, smooth_d: int = 3
) -> Optional[Dict[str, float]]:
    df = ohlcv(data)
    if len(df) < period + smooth_k + smooth_d - 2:
        return None
    low = df["low"].rolling(period).min()
    high = df["high"].rolling(period).max()
    span = (high - low).replace(0, np.nan)
    raw_k = (df["close"] - low) / span * 100
    k = raw_k.rolling(smooth_k).mean()
    d = k.rolling(smooth_d).mean()
    if pd.isna(k.iloc[-1]) or pd.isna(d.iloc[-1]):
        return None
    return {"k": float(k.iloc[-1]), "d": float(d.iloc[-1])}


def cci(data: PriceInput, period: int = 20) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < period:
        return None
    tp = ((df["high"] + df["low"] + df["close"]) / 3).to_numpy()[-period:]
    mean = tp.mean()
    deviation = np.abs(tp - mean).mean()
    if deviation == 0:
        return 0.0
    return float((tp[-1] - mean) / (0.015 * deviation))


def mfi(data: PriceInput, period: int = 14) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < period + 1:
        return None
    tp = (df["high"] + df["low"] + df["close"]) / 3
    flow = tp * df["volume"]
    delta = tp.diff()
    pos = flow.where(delta > 0, 0.0).iloc[-period:].sum()
    neg = flow.where(delta < 0, 0.0).iloc[-period:].sum()
    if neg == 0:
        return 100.0 if pos > 0 else 50.0
    return float(100 - 100 / (1 + pos / neg))


def roc(data: PriceInput, period: int = 12) -> Optional[float]:
    prices = closes(data)
    if len(prices) < period + 1 or prices[-period - 1] == 0:
        return None
    old = prices[-period - 1]
    return float((prices[-1] - old) / old * 100)


def williams_r(data: PriceInput, period: int = 14) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < period:
        return None
    window = df.iloc[-period:]
    high = window["high"].max()
    low = window["low"].min()
    if high == low:
        return None
    return float((high - df["close"].iloc[-1]) / (high - low) * -100)


# Volatility

def keltner(data: PriceInput, period: int = 20, multiplier: float = 2.0) -> Optional[Dict[str, float]]:
    mid = ema(data, period)
    band = atr(data, period)
    if mid is None or band is None:
        return None
    return {"upper": mid + multiplier * band, "middle": mid, "lower": mid - multiplier * band}


def annualized_volatility(data: PriceInput, min_points: int = 30) -> Optional[float]:
    """Annualized log-return volatility in percent."""
    prices = closes(data)
    if len(prices) < min_points or (prices <= 0).any():
        return None
    returns = np.diff(np.log(prices))
    return float(returns.std(ddof=0) * math.sqrt(252) * 100)


# Volume

def _money_flow_volume(df: pd.DataFrame) -> pd.Series:
    span = (df["high"] - df["low"]).replace(0, np.nan)
    mfm = ((df["close"] - df["low"]) - (df["high"] - df["close"])) / span
    return (mfm * df["volume"]).fillna(0.0)


def accumulation_distribution(data: PriceInput) -> Optional[float]:
    df = ohlcv(data)
    if df.empty:
        return None
    return float(_money_flow_volume(df).sum())


def chaikin_oscillator(data: PriceInput, short: int = 3, long: int = 10) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < long:
        return None
    adl = _money_flow_volume(df).cumsum().to_numpy()
    return ema(adl, short) - ema(adl, long)


def volume_roc(data: PriceInput, period: int = 12) -> Optional[float]:
    df = ohlcv(data)
    if len(df) < period + 1:
        return None
    old = df["volume"].iloc[-period - 1]
    if old == 0:
        return None
    return float((df["volume"].iloc[-1] - old) / old * 100)


class TechnicalAnalyzer:
    @staticmethod
    def compute_indicators(df: pd.DataFrame) -> pd.DataFrame:
        """Add rolling indicator columns to an OHLCV frame."""
        close = df["adj_close"] if "adj_close" in df.columns else df["close"]

        df["ma20"] = close.rolling(window=20).mean()
        df["ma50"] = close.rolling(window=50).mean()
        df["ma200"] = close.rolling(window=200).mean()
        df["ema20"] = close.ewm(span=20, adjust=False).mean()

        delta = close.diff()
        gain = delta.where(delta > 0, 0).rolling(window=14).mean()
        loss = (-delta.where(delta < 0, 0)).rolling(window=14).mean()
        rs = gain / loss
        df["rsi"] = 100 - (100 / (1 + rs))

        ema12 = close.ewm(span=12, adjust=False).mean()
        ema26 = close.ewm(span=26, adjust=False).mean()
        df["MACD"] = ema12 - ema26
        df["MACD_signal"] = df["MACD"].ewm(span=9, adjust=False).mean()
        df["MACD_histogram"] = df["MACD"] - df["MACD_signal"]

        std20 = close.rolling(window=20).std(ddof=0)
        df["bb_upper"] = df["ma20"] + 2 * std20
        df["bb_lower"] = df["ma20"] - 2 * std20

        if {"high", "low"}.issubset(df.columns):
            prev = close.shift(1)
            tr = pd.concat(
                [df["high"] - df["low"], (df["high"] - prev).abs(), (df["low"] - prev).abs()],
                axis=1,
            ).max(axis=1)
            df["atr"] = tr.rolling(window=14).mean()

        if "volume" in df.columns:
            df["vol_avg_20"] = df["volume"].rolling(window=20).mean()
            df["obv"] = (np.sign(close.diff().fillna(0)) * df["volume"]).cumsum()

        return df

    @staticmethod
    def pivot_levels(close: pd.Series, lookback: int = 50) -> tuple:
        """Support and resistance as the low and high of the lookback window."""
        if len(close) < lookback:
            return float(close.min()), float(close.max())
        recent = close.tail(lookback)
        return float(recent.min()), float(recent.max())


def _r(value: Optional[float]) -> Optional[float]:
    if value is None or not np.isfinite(value):
        return None
    return round(float(value), 2)


SNAPSHOT_KEYS = {
    "movingAverages": ("sma50", "sma200", "ema20", "dema14", "tema14", "wma14", "hma14", "vwap", "psar"),
    "momentum": (
        "rsi", "wilderRsi", "macd", "macdSignal", "macdHistogram",
        "stochK", "stochD", "cci", "mfi", "roc", "williamsR",
    ),
    "volatility": (
        "bollingerUpper", "bollingerMiddle", "bollingerLower", "atr",
        "keltnerUpper", "keltnerMiddle", "keltnerLower", "annualizedVolatility",
    ),
    "volume": ("obv", "chaikinOsc", "accDist", "volumeRoc"),
}


def empty_snapshot() -> Dict[str, Dict[str, Optional[float]]]:
    return {group: {k: None for k in keys} for group, keys in SNAPSHOT_KEYS.items()}


def calculate_technical_indicators(data: PriceInput) -> Dict[str, Dict[str, Optional[float]]]:
    """
    Grouped indicator snapshot over a price history. Values are rounded to two
    decimals; an indicator the history is too short for is ``None``.
    """
    snapshot = empty_snapshot()
    if data is None or len(data) == 0:
        return snapshot

    df = ohlcv(data)
    prices = df["close"].to_numpy()
    full_macd = macd_full(prices)
    stoch = stochastic(df)
    bands = bollinger(prices)
    kelt = keltner(df)

    snapshot["movingAverages"].update(
        sma50=_r(sma(prices, 50)),
        sma200=_r(sma(prices, 200)),
        ema20=_r(ema(prices, 20)),
        dema14=_r(dema(prices, 14)),
        tema14=_r(tema(prices, 14)),
        wma14=_r(wma(prices, 14)),
        hma14=_r(hma(prices, 14)),
        vwap=_r(vwap(df)),
        psar=_r(psar(df)),
    )
    snapshot["momentum"].update(
        rsi=_r(rsi(prices)),
        wilderRsi=_r(wilder_rsi(prices)),
        macd=_r(full_macd["macd"] if full_macd else macd(prices)),
        macdSignal=_r(full_macd["signal"]) if full_macd else None,
        macdHistogram=_r(full_macd["histogram"]) if full_macd else None,
        stochK=_r(stoch["k"]) if stoch else None,
        stochD=_r(stoch["d"]) if stoch else None,
        cci=_r(cci(df)),
        mfi=_r(mfi(df)),
        roc=_r(roc(prices)),
        williamsR=_r(williams_r(df)),
    )
    snapshot["volatility"].update(
        bollingerUpper=_r(bands["upper"]) if bands else None,
        bollingerMiddle=_r(bands["middle"]) if bands else None,
        bollingerLower=_r(bands["lower"]) if bands else None,
        atr=_r(atr(df)),
        keltnerUpper=_r(kelt["upper"]) if kelt else None,
        keltnerMiddle=_r(kelt["middle"]) if kelt else None,
        keltnerLower=_r(kelt["lower"]) if kelt else None,
        annualizedVolatility=_r(annualized_volatility(prices)),
    )
    snapshot["volume"].update(
        obv=_r(obv(df)),
        chaikinOsc=_r(chaikin_oscillator(df)),
        accDist=_r(accumulation_distribution(df)),
        volumeRoc=_r(volume_roc(df)),
    )
    return snapshot


def price_series(records: Iterable[Dict[str, Any]]) -> List[float]:
    return [_price_of(r) for r in records]
