from __future__ import annotations
import json
import math
import os
import re
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
import numpy as np
import pandas as pd
import requests

from marketlens.core import config
from marketlens.core.formatting import to_float

TWELVE_DATA_BASE = "https://api.twelvedata.com"
ALPHAVANTAGE_BASE = "https://www.alphavantage.co/query"
FMP_BASE = "https://financialmodelingprep.com/api/v3"
FRED_OBSERVATIONS_URL = "https://api.stlouisfed.org/fred/series/observations"

PROVIDER_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError)

COMPANY_NAMES = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corporation",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "META": "Meta Platforms Inc.",
    "TSLA": "Tesla Inc.",
    "NVDA": "NVIDIA Corporation",
    "AMD": "Advanced Micro Devices, Inc.",
    "INTC": "Intel Corporation",
    "CSCO": "Cisco Systems Inc.",
    "ADBE": "Adobe Inc.",
    "NFLX": "Netflix Inc.",
}

CRYPTO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "BNB": "binancecoin",
    "SOL": "solana",
    "XRP": "ripple",
    "USDC": "usd-coin",
    "ADA": "cardano",
    "AVAX": "avalanche-2",
    "DOGE": "dogecoin",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "TRX": "tron",
    "TON": "the-open-network",
    "DAI": "dai",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "MKR": "maker",
    "CRV": "curve-dao-token",
    "COMP": "compound-governance-token",
    "SNX": "havven",
    "YFI": "yearn-finance",
    "SUSHI": "sushi",
    "ATOM": "cosmos",
    "NEAR": "near",
    "FTM": "fantom",
    "ALGO": "algorand",
    "ICP": "internet-computer",
    "FIL": "filecoin",
    "HBAR": "hedera-hashgraph",
    "SAND": "the-sandbox",
    "MANA": "decentraland",
    "APE": "apecoin",
    "AXS": "axie-infinity",
    "SHIB": "shiba-inu",
    "PEPE": "pepe",
    "LTC": "litecoin",
}


class ProviderError(ValueError):
    """A provider answered but the payload is unusable (error body, rate limit, missing series)."""


# Deterministic fallback data

def base_price(symbol: str) -> float:
    return float(50 + sum(ord(c) for c in symbol) % 95)


def company_name(symbol: str) -> str:
    return COMPANY_NAMES.get(symbol.upper(), f"{symbol.upper()} Inc.")


def crypto_id(symbol: str) -> str:
    return CRYPTO_IDS.get(symbol.upper(), symbol.lower())


def _rng(symbol: str) -> np.random.RandomState:
    return np.random.RandomState(sum(ord(c) for c in symbol))


def generate_history(symbol: str, days: int = 90) -> List[Dict[str, Any]]:
    """Weekday OHLCV random walk over the last ``days`` calendar days, seeded by the symbol."""
    rng = _rng(symbol)
    today = datetime.now().date()
    price = base_price(symbol)
    out: List[Dict[str, Any]] = []
    for i in range(days, -1, -1):
        day = today - timedelta(days=i)
        if day.weekday() >= 5:
            continue
        trend = 1 if rng.rand() > 0.48 else -1
        price += trend * rng.rand() * 0.015 * price
        open_ = price * (1 + (rng.rand() - 0.5) * 0.01)
        out.append({
            "date": day.isoformat(),
            "value": price,
            "close": price,
            "open": open_,
            "high": max(open_, price) * (1 + rng.rand() * 0.01),
            "low": min(open_, price) * (1 - rng.rand() * 0.01),
            "volume": float(rng.randint(1_000_000, 11_000_000)),
        })
    return out


def generate_quote(symbol: str) -> Dict[str, Any]:
    rng = _rng(symbol)
    price = base_price(symbol)
    prev = price * (1 + (rng.rand() - 0.5) * 0.02)
    return {
        "symbol": symbol,
        "longName": company_name(symbol),
        "price": price,
        "change": price - prev,
        "changePercent": (price - prev) / prev * 100,
        "overview": {
            "volume": int(rng.randint(1_000_000, 11_000_000)),
            "open": price * (1 - 0.01 * rng.rand()),
            "high": price * (1 + 0.02 * rng.rand()),
            "low": price * (1 - 0.02 * rng.rand()),
            "previousClose": prev,
        },
        "source": "generated",
    }


def generate_fundamentals(symbol: str) -> Dict[str, Any]:
    rng = _rng(symbol)
    price = base_price(symbol)
    return {
        "symbol": symbol,
        "longName": company_name(symbol),
        "currentPrice": price,
        "marketCap": price * (rng.randint(1, 10)) * 1e9,
        "trailingPE": 15 + rng.rand() * 25,
        "forwardPE": 14 + rng.rand() * 20,
        "priceToBook": 2 + rng.rand() * 8,
        "volume": float(rng.randint(1_000_000, 11_000_000)),
        "averageVolume": float(rng.randint(2_000_000, 10_000_000)),
        "dayHigh": price * (1 + 0.02 * rng.rand()),
        "dayLow": price * (1 - 0.02 * rng.rand()),
        "fiftyDayAverage": price * (1 + (rng.rand() - 0.5) * 0.1),
        "twoHundredDayAverage": price * (1 + (rng.rand() - 0.5) * 0.2),
        "fiftyTwoWeekHigh": price * (1 + 0.2 * rng.rand()),
        "fiftyTwoWeekLow": price * (1 - 0.2 * rng.rand()),
        "beta": 0.8 + rng.rand() * 1.2,
        "dividendRate": rng.rand() * 3,
        "dividendYield": rng.rand() * 0.04,
        "source": "generated",
    }


# Provider response mappers

def _sorted_trimmed(records: List[Dict[str, Any]], days: Optional[int]) -> List[Dict[str, Any]]:
    records.sort(key=lambda r: r["date"])
    return records[-days:] if days else records


def _candle(date: str, o, h, l, c, v) -> Dict[str, Any]:
    close = float(c)
    return {
        "date": date,
        "value": close,
        "close": close,
        "open": float(o),
        "high": float(h),
        "low": float(l),
        "volume": float(v or 0),
    }


def parse_twelve_data_history(data: Dict[str, Any], days: Optional[int] = None) -> List[Dict[str, Any]]:
    if data.get("status") == "error":
        raise ProviderError(data.get("message") or "Twelve Data returned an error")
    values = data.get("values")
    if not isinstance(values, list):
        raise ProviderError("Invalid data format from Twelve Data")
    records = [
        _candle(v["datetime"], v["open"], v["high"], v["low"], v["close"], v.get("volume"))
        for v in values
    ]
    return _sorted_trimmed(records, days)


def parse_alphavantage_history(data: Dict[str, Any], days: Optional[int] = None) -> List[Dict[str, Any]]:
    if data.get("Error Message"):
        raise ProviderError(data["Error Message"])
    series = data.get("Time Series (Daily)")
    if not series:
        raise ProviderError(data.get("Note") or data.get("Information") or "No historical data in Alpha Vantage response")
    records = [
        _candle(d, v["1. open"], v["2. high"], v["3. low"], v["4. close"], v.get("5. volume"))
        for d, v in series.items()
    ]
    return _sorted_trimmed(records, days)


def parse_fmp_history(data: Dict[str, Any], days: Optional[int] = None) -> List[Dict[str, Any]]:
    hist = data.get("historical") if isinstance(data, dict) else None
    if not isinstance(hist, list):
        raise ProviderError("Invalid data format from FMP")
    records = [
        _candle(h["date"], h["open"], h["high"], h["low"], h["close"], h.get("volume"))
        for h in hist
    ]
    return _sorted_trimmed(records, days)


def parse_fmp_quote(data: Any) -> Dict[str, Any]:
    if not isinstance(data, list) or not data:
        raise ProviderError("Invalid data format from FMP")
    q = data[0]
    return {
        "symbol": q.get("symbol"),
        "longName": q.get("name"),
        "price": to_float(q.get("price")),
        "change": to_float(q.get("change")),
        "changePercent": to_float(q.get("changesPercentage")),
        "overview": {
            "volume": q.get("volume"),
            "open": q.get("open"),
            "high": q.get("dayHigh"),
            "low": q.get("dayLow"),
            "previousClose": q.get("previousClose"),
        },
        "source": "fmp",
    }


def parse_twelve_data_quote(data: Dict[str, Any], symbol: str) -> Dict[str, Any]:
    if data.get("status") == "error":
        raise ProviderError(data.get("message") or "Twelve Data returned an error")
    close = float(data["close"])
    prev = float(data["previous_close"])
    return {
        "symbol": symbol,
        "longName": data.get("name") or company_name(symbol),
        "price": close,
        "change": close - prev,
        "changePercent": (close - prev) / prev * 100 if prev else 0.0,
        "overview": {
            "volume": int(float(data.get("volume") or 0)),
            "open": to_float(data.get("open")),
            "high": to_float(data.get("high")),
            "low": to_float(data.get("low")),
            "previousClose": prev,
        },
        "source": "twelvedata",
    }


def parse_alphavantage_quote(data: Dict[str, Any], symbol: str) -> Dict[str, Any]:
    if data.get("Error Message"):
        raise ProviderError(data["Error Message"])
    q = data.get("Global Quote") or {}
    if not q.get("05. price"):
        raise ProviderError(data.get("Information") or "No quote data in Alpha Vantage response")
    return {
        "symbol": symbol,
        "longName": company_name(symbol),
        "price": float(q["05. price"]),
        "change": to_float(q.get("09. change")),
        "changePercent": to_float(str(q.get("10. change percent", "")).rstrip("%")),
        "overview": {
            "volume": int(float(q.get("06. volume") or 0)),
            "open": to_float(q.get("02. open")),
            "high": to_float(q.get("03. high")),
            "low": to_float(q.get("04. low")),
            "previousClose": to_float(q.get("08. previous close")),
        },
        "source": "alphavantage",
    }


def _range_bounds(text: Optional[str]):
    if not text or "-" not in text:
        return None, None
    low, high = text.split("-", 1)
    return to_float(low.strip()), to_float(high.strip())


def parse_fmp_fundamentals(profile: Any, ratios: Any = None) -> Dict[str, Any]:
    """Map an FMP profile (plus optional ratios) onto Yahoo-style fundamentals keys."""
    if not isinstance(profile, list) or not profile:
        raise ProviderError("Invalid data format from FMP")
    p = profile[0]
    r = ratios[0] if isinstance(ratios, list) and ratios else {}
    price = to_float(p.get("price"))
    low, high = _range_bounds(p.get("range"))
    last_div = to_float(p.get("lastDiv"))
    return {
        "symbol": p.get("symbol"),
        "longName": p.get("companyName"),
        "sector": p.get("sector"),
        "industry": p.get("industry"),
        "currentPrice": price,
        "marketCap": to_float(p.get("mktCap")),
        "trailingPE": to_float(r.get("priceEarningsRatio")) or to_float(p.get("pe")),
        "priceToBook": to_float(r.get("priceToBookRatio")),
        "currentRatio": to_float(r.get("currentRatio")),
        "quickRatio": to_float(r.get("quickRatio")),
        "grossMargins": to_float(r.get("grossProfitMargin")),
        "operatingMargins": to_float(r.get("operatingProfitMargin")),
        "profitMargins": to_float(r.get("netProfitMargin")),
        "returnOnEquity": to_float(r.get("returnOnEquity")),
        "returnOnAssets": to_float(r.get("returnOnAssets")),
        "averageVolume": to_float(p.get("volAvg")),
        "fiftyTwoWeekLow": low,
        "fiftyTwoWeekHigh": high,
        "beta": to_float(p.get("beta")),
        "dividendRate": last_div,
        "dividendYield": last_div / price if last_div and price else None,
        "source": "fmp",
    }


def parse_alphavantage_overview(data: Dict[str, Any]) -> Dict[str, Any]:
    if len(data) < 5:
        raise ProviderError(data.get("Note") or data.get("Information") or "Insufficient data from Alpha Vantage")
    def g(key):
        return to_float(data.get(key))

    return {
        "symbol": data.get("Symbol"),
        "longName": data.get("Name"),
        "sector": data.get("Sector"),
        "industry": data.get("Industry"),
        "marketCap": g("MarketCapitalization"),
        "trailingPE": g("TrailingPE"),
        "forwardPE": g("ForwardPE"),
        "pegRatio": g("PEGRatio"),
        "priceToBook": g("PriceToBookRatio"),
        "targetMeanPrice": g("AnalystTargetPrice"),
        "fiftyDayAverage": g("50DayMovingAverage"),
        "twoHundredDayAverage": g("200DayMovingAverage"),
        "fiftyTwoWeekHigh": g("52WeekHigh"),
        "fiftyTwoWeekLow": g("52WeekLow"),
        "beta": g("Beta"),
        "dividendRate": g("DividendPerShare"),
        "dividendYield": g("DividendYield"),
        "profitMargins": g("ProfitMargin"),
        "operatingMargins": g("OperatingMarginTTM"),
        "returnOnEquity": g("ReturnOnEquityTTM"),
        "returnOnAssets": g("ReturnOnAssetsTTM"),
        "revenueGrowth": g("QuarterlyRevenueGrowthYOY"),
        "earningsGrowth": g("QuarterlyEarningsGrowthYOY"),
        "totalRevenue": g("RevenueTTM"),
        "ebitda": g("EBITDA"),
        "sharesOutstanding": g("SharesOutstanding"),
        "trailingEps": g("EPS"),
        "source": "alphavantage",
    }


def parse_coingecko_chart(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    prices = data.get("prices")
    if not isinstance(prices, list):
        raise ProviderError("Invalid data format from CoinGecko")
    volumes = {int(ts): v for ts, v in data.get("total_volumes") or []}
    out = []
    for ts, price in prices:
        close = float(price)
        out.append({
            "date": pd.to_datetime(ts, unit="ms").strftime("%Y-%m-%d"),
            "value": close,
            "close": close,
            "open": close,
            "high": close,
            "low": close,
            "volume": float(volumes.get(int(ts), 0.0)),
        })
    return out


class DataProvider:
    """
    Async market data with provider fallback.

    Each call walks its provider chain, skipping providers without a key and
    moving on when one fails. The last link is deterministic generated data,
    so network problems never surface as exceptions.
    """

    def __init__(
        self,
        twelve_data_key: Optional[str] = None,
        alphavantage_key: Optional[str] = None,
        fmp_key: Optional[str] = None,
        coingecko_base: Optional[str] = None,
        offline: Optional[bool] = None,
    ):
        self.twelve_data_key = twelve_data_key or config.twelve_data_key()
        self.alphavantage_key = alphavantage_key or config.alphavantage_key()
        self.fmp_key = fmp_key or config.fmp_key()
        self.coingecko_base = coingecko_base or config.COINGECKO_BASE_URL
        self._offline = offline

    @property
    def offline(self) -> bool:
        return config.is_test_mode() if self._offline is None else self._offline

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(timeout=30) as client:
            r = await client.get(url, params=params)
            r.raise_for_status()
            return r.json()

    async def _chain(self, what: str, symbol: str, steps, fallback):
        if self.offline:
            print(f"⚠️ Offline mode, using generated {what} for {symbol}")
            return fallback()
        for name, key, call in steps:
            if not key:
                continue
            try:
                result = await call()
                print(f"✅ {name} {what} for {symbol}")
                return result
            except PROVIDER_ERRORS as e:
                print(f"⚠️ {name} {what} failed for {symbol}: {e}")
        print(f"⚠️ All providers failed for {symbol}, using generated {what}")
        return fallback()

    async def history(self, symbol: str, days: int = 90) -> List[Dict[str, Any]]:
        async def twelve():
            data = await self._get_json(
                f"{TWELVE_DATA_BASE}/time_series",
                {"symbol": symbol, "interval": "1day", "outputsize": 5000, "apikey": self.twelve_data_key},
            )
            return parse_twelve_data_history(data, days)

        async def alpha():
            data = await self._get_json(
                ALPHAVANTAGE_BASE,
                {"function": "TIME_SERIES_DAILY", "symbol": symbol, "outputsize": "full", "apikey": self.alphavantage_key},
            )
            return parse_alphavantage_history(data, days)

        async def fmp():
            data = await self._get_json(f"{FMP_BASE}/historical-price-full/{symbol}", {"apikey": self.fmp_key})
            return parse_fmp_history(data, days)

        return await self._chain(
            "history",
            symbol,
            [
                ("Twelve Data", self.twelve_data_key, twelve),
                ("Alpha Vantage", self.alphavantage_key, alpha),
                ("FMP", self.fmp_key, fmp),
            ],
            lambda: generate_history(symbol, days),
        )

    async def quote(self, symbol: str) -> Dict[str, Any]:
        async def fmp():
            return parse_fmp_quote(await self._get_json(f"{FMP_BASE}/quote/{symbol}", {"apikey": self.fmp_key}))

        async def twelve():
            data = await self._get_json(
                f"{TWELVE_DATA_BASE}/quote", {"symbol": symbol, "apikey": self.twelve_data_key}
            )
            return parse_twelve_data_quote(data, symbol)

        async def alpha():
            data = await self._get_json(
                ALPHAVANTAGE_BASE,
                {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.alphavantage_key},
            )
            return parse_alphavantage_quote(data, symbol)

        return await self._chain(
            "quote",
            symbol,
            [
                ("FMP", self.fmp_key, fmp),
                ("Twelve Data", self.twelve_data_key, twelve),
                ("Alpha Vantage", self.alphavantage_key, alpha),
            ],
            lambda: generate_quote(symbol),
        )

    async def fundamentals(self, symbol: str) -> Dict[str, Any]:
        """Flat Yahoo-style fundamentals; feed to ``build_fundamentals_payload``."""
        async def fmp():
            profile = await self._get_json(f"{FMP_BASE}/profile/{symbol}", {"apikey": self.fmp_key})
            try:
                ratios = await self._get_json(f"{FMP_BASE}/ratios/{symbol}", {"apikey": self.fmp_key})
            except httpx.HTTPError as e:
                print(f"⚠️ FMP ratios unavailable for {symbol}: {e}")
                ratios = []
            return parse_fmp_fundamentals(profile, ratios)

        async def alpha():
            data = await self._get_json(
                ALPHAVANTAGE_BASE, {"function": "OVERVIEW", "symbol": symbol, "apikey": self.alphavantage_key}
            )
            return parse_alphavantage_overview(data)

        raw = await self._chain(
            "fundamentals",
            symbol,
            [("FMP", self.fmp_key, fmp), ("Alpha Vantage", self.alphavantage_key, alpha)],
            lambda: generate_fundamentals(symbol),
        )
        if to_float(raw.get("currentPrice")) is None:
            raw["currentPrice"] = (await self.quote(symbol))["price"]
        return raw

    async def crypto_history(self, symbol: str, days: int = 90) -> List[Dict[str, Any]]:
        async def gecko():
            data = await self._get_json(
                f"{self.coingecko_base}/coins/{crypto_id(symbol)}/market_chart",
                {"vs_currency": "usd", "days": days, "interval": "daily"},
            )
            return parse_coingecko_chart(data)

        return await self._chain(
            "crypto history", symbol, [("CoinGecko", True, gecko)], lambda: generate_history(symbol, days)
        )

    async def crypto_quote(self, symbol: str) -> Dict[str, Any]:
        coin = crypto_id(symbol)

        async def gecko():
            data = await self._get_json(
                f"{self.coingecko_base}/simple/price",
                {
                    "ids": coin,
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                    "include_24hr_vol": "true",
                    "include_market_cap": "true",
                },
            )
            if coin not in data:
                raise ProviderError(f"CoinGecko has no price for {coin}")
            row = data[coin]
            price = float(row["usd"])
            pct = to_float(row.get("usd_24h_change")) or 0.0
            return {
                "symbol": symbol.upper(),
                "longName": coin,
                "price": price,
                "change": price - price / (1 + pct / 100),
                "changePercent": pct,
                "overview": {
                    "volume": to_float(row.get("usd_24h_vol")),
                    "marketCap": to_float(row.get("usd_market_cap")),
                },
                "source": "coingecko",
            }

        return await self._chain("crypto quote", symbol, [("CoinGecko", True, gecko)], lambda: generate_quote(symbol))


# FRED

FRED_FALLBACK_LEVELS = {
    "GS1M": 5.30,
    "GS3M": 5.35,
    "GS6M": 5.25,
    "GS1": 5.00,
    "GS2": 4.60,
    "GS3": 4.40,
    "GS5": 4.25,
    "GS7": 4.25,
    "GS10": 4.30,
    "GS20": 4.55,
    "GS30": 4.45,
    "T5YIEM": 2.30,
    "FII10": 2.00,
    "SP500DY": 1.40,
    "SP500": 5000.0,
}


def synthetic_series(series_id: str, periods: int = 260) -> List[Dict[str, Any]]:
    """Deterministic business-day series around a plausible level for the id."""
    level = FRED_FALLBACK_LEVELS.get(series_id, 3.0)
    dates = pd.bdate_range(end=datetime.now().date(), periods=periods)
    amp = level * 0.02
    return [
        {"date": d.strftime("%Y-%m-%d"), "value": round(level + amp * math.sin(i / 7) + (i % 10) * amp * 0.05, 4)}
        for i, d in enumerate(dates)
    ]


def _normalize_observations(obs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # FRED reports values as strings and "." for missing
    return [{"date": o.get("date"), "value": to_float(o.get("value"))} for o in obs]


class FredClient:
    """FRED observations with an on-disk JSON cache keyed by series and date range."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache_dir: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        offline: Optional[bool] = None,
    ):
        self.api_key = api_key or config.fred_key()
        self.cache_dir = str(cache_dir or config.CACHE_DIR)
        self.ttl_seconds = config.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._offline = offline

    @property
    def offline(self) -> bool:
        return config.is_test_mode() if self._offline is None else self._offline

    def cache_path(self, series_id: str, start: Optional[str], end: Optional[str]) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", series_id)
        key = f"{safe}__{start or ''}__{end or ''}".strip("_") or safe
        return os.path.join(self.cache_dir, key + ".json")

    def _read_cache(self, path: str, refresh: bool) -> Optional[List[Dict[str, Any]]]:
        if refresh or not os.path.exists(path):
            return None
        if self.ttl_seconds is not None and time.time() - os.path.getmtime(path) > self.ttl_seconds:
            return None
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"⚠️ Ignoring unreadable FRED cache {path}: {e}")
            return None
        if not isinstance(data, dict) or "observations" not in data:
            return None
        return _normalize_observations(data["observations"])

    def observations(
        self,
        series_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        refresh: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Observations as ``[{"date", "value"}]`` in ascending date order.

        Served from cache while fresh. Without a key (or offline) and without
        a cache entry a synthetic series is returned instead.
        """
        path = self.cache_path(series_id, start, end)
        cached = self._read_cache(path, refresh)
        if cached is not None:
            return cached

        if self.offline or not self.api_key:
            print(f"⚠️ FRED_API_KEY not configured, using fallback data for {series_id}")
            return self._fallback(series_id, start)

        params = {"series_id": series_id, "api_key": self.api_key, "file_type": "json", "sort_order": "asc"}
        if start:
            params["observation_start"] = start
        if end:
            params["observation_end"] = end
        try:
            r = requests.get(FRED_OBSERVATIONS_URL, params=params, timeout=20)
            r.raise_for_status()
            data = r.json()
            if "observations" not in data:
                raise ProviderError(data.get("error_message") or f"FRED returned no observations for {series_id}")
        except (requests.RequestException, ValueError) as e:
            print(f"⚠️ FRED API error for {series_id}: {e}, using fallback")
            return self._fallback(series_id, start)

        os.makedirs(self.cache_dir, exist_ok=True)
        with open(path, "w") as f:
            f.write(r.text)
        out = _normalize_observations(data["observations"])
        print(f"✅ Got {len(out)} observations from FRED for {series_id}")
        return out

    def _fallback(self, series_id: str, start: Optional[str]) -> List[Dict[str, Any]]:
        periods = 260
        if start:
            periods = max(len(pd.bdate_range(start=start, end=datetime.now().date())), 2)
        return synthetic_series(series_id, periods)

    def values(self, series_id: str, days: int = 365) -> List[float]:
        start = (datetime.now().date() - timedelta(days=days)).isoformat()
        return [o["value"] for o in self.observations(series_id, start=start) if o["value"] is not None]

    def latest(self, series_id: str) -> Optional[float]:
        vals = [o["value"] for o in self.observations(series_id) if o["value"] is not None]
        return vals[-1] if vals else None
