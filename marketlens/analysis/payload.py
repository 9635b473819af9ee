from __future__ import annotations
from typing import Any, Dict, Optional

from marketlens.core.formatting import to_float


# Fields that only some providers report; passed through as-is, None when absent
PASSTHROUGH_FIELDS = (
    "totalAssets",
    "totalCurrentLiabilities",
    "ebit",
    "netIncome",
    "depreciation",
    "capitalExpenditures",
    "interestExpense",
    "totalOpex",
    "operatingMargins_lastYear",
    "freeCashflow_lastYear",
)

KEY_STAT_PASSTHROUGH = (
    "putCallRatio",
    "impliedVolatility",
    "historicalVolatility",
    "averageVolume",
    "trailingPE",
)


def _first(raw: Dict[str, Any], *keys: str) -> Optional[float]:
    for k in keys:
        v = to_float(raw.get(k))
        if v is not None:
            return v
    return None


def _or(value: Optional[float], default: float) -> float:
    return default if value is None else value


def build_fundamentals_payload(raw: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Normalize a flat fundamentals dict (Yahoo-style camelCase keys, as returned by
    yfinance ``Ticker.info`` or the provider mappers) into the analysis shape:

        {"financialData": {...}, "keyStats": {...}, "price": {...}}

    Fields the provider did not report are filled with conservative defaults
    derived from price and market cap so every analyzer sees a complete shape.
    """
    price = _first(raw, "currentPrice", "regularMarketPrice", "price")
    if price is None or price <= 0:
        raise ValueError("Fundamentals payload has no usable price")

    low_52 = _first(raw, "fiftyTwoWeekLow")
    high_52 = _first(raw, "fiftyTwoWeekHigh")
    yearly_return = (price - low_52) / low_52 if low_52 else 0.0
    shares = _first(raw, "sharesOutstanding")
    market_cap = _first(raw, "marketCap")
    if market_cap is None:
        market_cap = price * shares if shares else 0.0
    if not shares:
        shares = market_cap / price if market_cap else 0.0

    total_cash = _or(_first(raw, "totalCash"), market_cap * 0.1)
    recommendation_key = raw.get("recommendationKey") or "hold"

    financial_data = {
        "currentPrice": price,
        "targetHighPrice": _or(_first(raw, "targetHighPrice"), price * 1.2),
        "targetLowPrice": _or(_first(raw, "targetLowPrice"), price * 0.8),
        "targetMedianPrice": _or(_first(raw, "targetMedianPrice", "targetMeanPrice"), price),
        "targetMeanPrice": _or(_first(raw, "targetMeanPrice"), price),
        "recommendationMean": _or(_first(raw, "recommendationMean"), 3.0),
        "recommendationKey": str(recommendation_key),
        "numberOfAnalystOpinions": int(_or(_first(raw, "numberOfAnalystOpinions"), 0)),
        "totalCash": total_cash,
        "totalDebt": _or(_first(raw, "totalDebt"), market_cap * 0.2),
        "debtToEquity": _or(_first(raw, "debtToEquity"), 0.0),
        "revenueGrowth": _or(_first(raw, "revenueGrowth"), yearly_return),
        "grossMargins": _or(_first(raw, "grossMargins"), 0.35),
        "operatingMargins": _or(_first(raw, "operatingMargins"), 0.15),
        "profitMargins": _or(_first(raw, "profitMargins"), 0.10),
        "ebitda": _or(_first(raw, "ebitda"), market_cap * 0.08),
        "ebitdaMargins": _or(_first(raw, "ebitdaMargins"), 0.12),
        "operatingCashflow": _or(_first(raw, "operatingCashflow"), market_cap * 0.06),
        "freeCashflow": _or(_first(raw, "freeCashflow"), market_cap * 0.04),
        "earningsGrowth": _or(_first(raw, "earningsGrowth"), yearly_return),
        "returnOnEquity": _or(_first(raw, "returnOnEquity"), 0.12),
        "returnOnAssets": _or(_first(raw, "returnOnAssets"), 0.06),
        "totalRevenue": _or(_first(raw, "totalRevenue"), market_cap * 0.8),
        "totalCashPerShare": _or(
            _first(raw, "totalCashPerShare"), total_cash / shares if shares else 0.0
        ),
        "currentRatio": _or(_first(raw, "currentRatio"), 1.5),
        "quickRatio": _or(_first(raw, "quickRatio"), 1.2),
        "researchAndDevelopment": _or(
            _first(raw, "researchAndDevelopment", "researchAndDevelopmentExpense"),
            market_cap * 0.05,
        ),
        "totalCurrentAssets": _or(_first(raw, "totalCurrentAssets"), market_cap * 0.3),
    }
    for field in PASSTHROUGH_FIELDS:
        financial_data[field] = _first(raw, field)

    key_stats = {
        "enterpriseValue": _or(_first(raw, "enterpriseValue"), market_cap * 1.1),
        "forwardPE": _or(_first(raw, "forwardPE", "trailingPE"), 15.0),
        "pegRatio": _or(_first(raw, "pegRatio", "trailingPegRatio"), 1.5),
        "priceToBook": _or(_first(raw, "priceToBook"), 2.5),
        "forwardEps": _or(_first(raw, "forwardEps", "trailingEps"), 1.0),
        "trailingEps": _or(_first(raw, "trailingEps"), 1.0),
        "enterpriseToRevenue": _or(_first(raw, "enterpriseToRevenue"), 2.5),
        "enterpriseToEbitda": _or(_first(raw, "enterpriseToEbitda"), 12.0),
        "fiftyTwoWeekHigh": _or(high_52, price * 1.2),
        "fiftyTwoWeekLow": _or(low_52, price * 0.8),
        "sharesOutstanding": shares,
        "marketCap": market_cap,
        "beta": _or(_first(raw, "beta"), 1.0),
        "earningsQuarterlyGrowth": _or(_first(raw, "earningsQuarterlyGrowth"), yearly_return / 4),
        "priceToSalesTrailing12Months": _or(_first(raw, "priceToSalesTrailing12Months"), 2.5),
        "dividendRate": _or(_first(raw, "dividendRate"), 0.0),
        "dividendYield": _or(_first(raw, "dividendYield"), 0.0),
        "payoutRatio": _or(_first(raw, "payoutRatio"), 0.0),
        "heldPercentInstitutions": _or(_first(raw, "heldPercentInstitutions"), 0.7),
        "heldPercentInsiders": _or(_first(raw, "heldPercentInsiders"), 0.05),
        "shortRatio": _or(_first(raw, "shortRatio"), 2.0),
        "shortPercentOfFloat": _or(_first(raw, "shortPercentOfFloat"), 0.05),
        "52WeekChange": _or(_first(raw, "52WeekChange"), yearly_return),
        "SandP52WeekChange": _or(_first(raw, "SandP52WeekChange"), 0.08),
        "floatShares": _or(_first(raw, "floatShares", "sharesOutstanding"), shares),
        "averageVolume10Day": _first(raw, "averageVolume10Day", "averageVolume10days"),
    }
    for field in KEY_STAT_PASSTHROUGH:
        key_stats[field] = _first(raw, field)

    price_block = {
        "regularMarketPrice": price,
        "regularMarketDayHigh": _or(_first(raw, "regularMarketDayHigh", "dayHigh"), price * 1.02),
        "regularMarketDayLow": _or(_first(raw, "regularMarketDayLow", "dayLow"), price * 0.98),
        "regularMarketVolume": _or(_first(raw, "regularMarketVolume", "volume"), 1_000_000),
        "regularMarketPreviousClose": _or(
            _first(raw, "regularMarketPreviousClose", "previousClose"), price
        ),
        "marketCap": market_cap,
    }

    return {"financialData": financial_data, "keyStats": key_stats, "price": price_block}


def has_payload(payload: Optional[Dict[str, Any]]) -> bool:
    return bool(payload) and "financialData" in payload and "keyStats" in payload
