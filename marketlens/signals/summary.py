from __future__ import annotations
from typing import Any, Dict, Optional


def _gt(a: Optional[float], b: Optional[float]) -> bool:
    return a is not None and b is not None and a > b


def _fixed(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.2f}"


def generate_technical_analysis(snapshot: Optional[Dict[str, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """Turn an indicator snapshot into trend, momentum and volatility signals."""
    if not snapshot:
        return None

    ma = snapshot.get("movingAverages", {})
    mom = snapshot.get("momentum", {})
    vol = snapshot.get("volatility", {})
    sma50, sma200, ema20 = ma.get("sma50"), ma.get("sma200"), ma.get("ema20")

    trend = "neutral"
    strength = "weak"
    support = 0.0
    resistance = 0.0

    if _gt(sma50, sma200):
        trend = "bullish"
        if _gt(ema20, sma50):
            strength = "strong"
        support = sma50
        resistance = vol.get("bollingerUpper") or 0.0
    elif _gt(sma200, sma50):
        trend = "bearish"
        if _gt(sma50, ema20):
            strength = "strong"
        resistance = sma50
        support = vol.get("bollingerLower") or 0.0

    rsi = mom.get("rsi")
    momentum = "neutral"
    if _gt(rsi, 70):
        momentum = "overbought"
    elif _gt(30, rsi):
        momentum = "oversold"

    macd_signal = "bullish" if _gt(mom.get("macd"), mom.get("macdSignal")) else "bearish"

    overall = trend
    if trend == "bullish" and momentum == "overbought":
        overall = "cautious bullish"
    elif trend == "bearish" and momentum == "oversold":
        overall = "cautious bearish"

    level = "high" if _gt(vol.get("atr"), 2) else "moderate"
    upper, lower = vol.get("bollingerUpper"), vol.get("bollingerLower")
    width = upper - lower if upper is not None and lower is not None else None

    return {
        "trend": {
            "signal": trend,
            "strength": strength,
            "supportLevel": _fixed(support),
            "resistanceLevel": _fixed(resistance),
        },
        "momentum": {"signal": momentum, "rsiValue": _fixed(rsi), "macdSignal": macd_signal},
        "volatility": {"level": level, "bollingerWidth": _fixed(width)},
        "overall": {
            "signal": overall,
            "summary": (
                f"The asset shows a {strength} {trend} trend with {momentum} momentum "
                f"and {level} volatility."
            ),
        },
    }


def price_momentum(start: Optional[float], end: Optional[float]) -> Optional[Dict[str, Any]]:
    """Percent move between two prices with a Strong / Positive / Negative label."""
    if not start or end is None:
        return None
    pct = (end - start) / start * 100
    label = "Strong" if pct > 5 else "Positive" if pct > 0 else "Negative"
    return {"percent": round(pct, 2), "signal": label}
