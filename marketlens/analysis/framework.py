from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from marketlens.analysis import sections as s
from marketlens.analysis.payload import build_fundamentals_payload, has_payload
from marketlens.signals.indicators import calculate_technical_indicators
from marketlens.signals.patterns import detect_chart_patterns
from marketlens.signals.summary import generate_technical_analysis

NO_DATA = "No financial data available for analysis"


@dataclass
class Section:
    id: str
    title: str
    build: Callable[[Dict[str, Any], Optional[Dict[str, Any]]], Dict[str, Any]]
    fallback_title: str
    list_output: bool = False


def _merge(*groups: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for g in groups:
        merged.update(g)
    return merged


def _summary(payload, history):
    metrics = s.analyze_summary_dashboard(payload)
    view = metrics["summaryView"][0]["analysis"]
    return {"metrics": metrics, "summary": view}


def _extend(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Append items from extra into base, skipping metrics base already reports."""
    for group, items in extra.items():
        current = base.setdefault(group, [])
        seen = {i["metric"] for i in current}
        current.extend(i for i in items if i["metric"] not in seen)
    return base


def _style(payload, history):
    metrics = s.enhanced_investment_style(payload)
    _extend(metrics, s.analyze_investment_style(payload))
    _extend(metrics, s.analyze_value_metrics(payload))
    _extend(metrics, s.analyze_growth_quality(payload))
    summary = (metrics.get("summary") or [{}])[0].get("analysis") or "Analysis not available"
    return {"metrics": metrics, "summary": summary}


def _macro(payload, history):
    return {
        "metrics": _merge(s.analyze_macro(payload), s.enhanced_macro(payload)),
        "summary": "Market cycle, sector and macroeconomic sensitivity of the business.",
    }


def _business(payload, history):
    return {
        "metrics": s.analyze_business(payload),
        "summary": "Competitive position, operational efficiency and management effectiveness.",
    }


def _financials(payload, history):
    return {
        "metrics": s.analyze_financials(payload),
        "summary": "Profitability, growth, financial health and valuation against industry averages.",
    }


def _trading(payload, history):
    return {
        "metrics": _merge(s.analyze_trading(payload), s.enhanced_trading(payload)),
        "summary": "Technical setup, options sentiment and trading dynamics.",
    }


def _risk(payload, history):
    return {
        "metrics": _merge(s.analyze_risk(payload), s.enhanced_risk(payload)),
        "summary": "Fundamental, market, concentration and tail risk assessment.",
    }


def _monitoring(payload, history):
    return {
        "metrics": s.analyze_monitoring(payload),
        "summary": "Triggers to watch for ongoing position management.",
    }


def _sentiment(payload, history):
    indicators = s.analyze_market_sentiment(payload) + s.analyze_technicals(history)
    return {
        "indicators": indicators,
        "summary": "Institutional positioning, analyst views and recent price action.",
    }


SECTIONS: List[Section] = [
    Section("summary", "Investment Summary Dashboard", _summary, "Executive Summary"),
    Section("investment-style", "Investment Framework Analysis", _style, "Investment Framework"),
    Section("macro", "Macro & Market Analysis", _macro, "Macro Analysis"),
    Section("business", "Business Analysis", _business, "Business Analysis"),
    Section("financials", "Financial Analysis", _financials, "Financial Analysis"),
    Section("trading", "Advanced Trading Analysis", _trading, "Trading Analysis"),
    Section("risk", "Risk Management Framework", _risk, "Risk Analysis"),
    Section("monitoring", "Monitoring Framework", _monitoring, "Monitoring Dashboard"),
    Section("sentiment", "Market Sentiment Analysis", _sentiment, "Market Sentiment", list_output=True),
]

SECTION_INDEX = {sec.id: sec for sec in SECTIONS}


def section_ids() -> List[str]:
    return [sec.id for sec in SECTIONS]


def run_section(
    section_id: str,
    payload: Optional[Dict[str, Any]],
    history: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Run one analysis section. Missing payloads and analyzer failures are
    reported inside the result instead of raised; an unknown id raises KeyError.
    """
    sec = SECTION_INDEX[section_id]
    empty_key = "indicators" if sec.list_output else "metrics"
    empty: Any = [] if sec.list_output else {}

    if not has_payload(payload):
        return {"title": sec.fallback_title, empty_key: empty, "summary": NO_DATA}

    try:
        body = sec.build(payload, history)
    except Exception as e:
        print(f"⚠️ {sec.title} failed: {e}")
        return {
            "title": sec.title,
            empty_key: empty,
            "summary": f"Error generating analysis: {str(e) or 'Unknown error'}",
        }
    return {"title": sec.title, **body}


def run_all_sections(
    payload: Optional[Dict[str, Any]],
    history: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    return [dict(run_section(sec.id, payload, history), id=sec.id) for sec in SECTIONS]


def analyze_asset(
    symbol: str,
    history: List[Dict[str, Any]],
    raw_fundamentals: Optional[Dict[str, Any]] = None,
    timeframe: Optional[str] = None,
    include_sections: bool = True,
) -> Dict[str, Any]:
    """Technical snapshot, signal summary, chart patterns and (optionally) all sections for one symbol."""
    snapshot = calculate_technical_indicators(history)
    result: Dict[str, Any] = {
        "symbol": symbol,
        "points": len(history),
        "technicals": snapshot,
        "technicalSummary": generate_technical_analysis(snapshot) if history else None,
        "patterns": detect_chart_patterns(history, timeframe),
    }
    if not include_sections:
        return result

    payload = None
    if raw_fundamentals:
        try:
            payload = build_fundamentals_payload(raw_fundamentals)
        except ValueError as e:
            print(f"⚠️ Fundamentals unusable for {symbol}: {e}")
    result["fundamentals"] = payload
    result["sections"] = run_all_sections(payload, s.recent_sample(history))
    return result
