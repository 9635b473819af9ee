import copy

import pytest

from marketlens.analysis import framework
from marketlens.analysis import sections as s
from marketlens.analysis.framework import NO_DATA, analyze_asset, run_all_sections, run_section, section_ids


EXPECTED_IDS = [
    "summary", "investment-style", "macro", "business", "financials",
    "trading", "risk", "monitoring", "sentiment",
]


def _metric(groups, group, name):
    return next(i for i in groups[group] if i["metric"] == name)


def _stats(payload, values):
    out = copy.deepcopy(payload)
    out["keyStats"].update(values)
    return out


def test_summary_dashboard_groups(payload):
    groups = s.analyze_summary_dashboard(payload)
    assert set(groups) == {"valuation", "performance", "risk", "summaryView"}
    assert groups["summaryView"][0]["value"] == "Risk score 2/6"
    for items in groups.values():
        for item in items:
            assert set(item) == {"metric", "value", "analysis", "impact"}


def test_financials(payload):
    groups = s.analyze_financials(payload)
    assert set(groups) == {"profitability", "growth", "health", "valuation"}
    assert _metric(groups, "health", "Cash Flow")["impact"] == "Strong"
    assert _metric(groups, "health", "Debt to Equity")["impact"] == "Caution"
    # financial bucket (operating margin above 25%) averages 15x
    assert _metric(groups, "valuation", "Forward P/E")["impact"] == "Neutral"


def test_business_and_risk_groups(payload):
    assert set(s.analyze_business(payload)) == {
        "competitivePosition", "operationalEfficiency", "managementEffectiveness"}
    assert set(s.enhanced_risk(payload)) >= {"fundamentalRisk", "concentrationRisk", "tailRisk"}
    assert set(s.analyze_monitoring(payload)) == {
        "priceTriggers", "fundamentalMonitoring", "riskMonitoring", "summary"}


def test_market_sentiment_indicators(payload):
    indicators = s.analyze_market_sentiment(payload)
    assert [i["indicator"] for i in indicators] == [
        "Analyst Consensus", "Price Targets", "Ownership Profile", "Sentiment Score"]
    assert indicators[0]["signal"] == "Strong Buy"
    assert indicators[1]["signal"] == "Strong Upside"


def test_technicals_from_recent_sample():
    history = s.recent_sample([{"value": v} for v in (90, 100, 102, 110)])
    assert [p["value"] for p in history["recentSample"]] == [100, 102, 110]
    items = s.analyze_technicals(history)
    assert items[0]["value"] == "10.00%"
    assert items[0]["signal"] == "Strong"
    assert s.analyze_technicals({"recentSample": [{"value": 1}]}) == []
    assert s.analyze_technicals(None) == []


def test_technicals_from_plain_prices():
    items = s.analyze_technicals(s.recent_sample([90.0, 100.0, 101.0, 102.0]))
    assert items[0]["value"] == "2.00%"
    assert items[0]["signal"] == "Positive"
    # dicts without a price produce no indicator
    assert s.analyze_technicals({"recentSample": [{"date": "a"}, {"date": "b"}, {"date": "c"}]}) == []


def test_run_section_without_payload():
    out = run_section("summary", None)
    assert out == {"title": "Executive Summary", "metrics": {}, "summary": NO_DATA}
    out = run_section("sentiment", {})
    assert out["indicators"] == []


def test_run_section_unknown_id(payload):
    with pytest.raises(KeyError):
        run_section("nope", payload)


def test_run_section_wraps_errors(payload, monkeypatch):
    def boom(_payload):
        raise RuntimeError("boom")

    monkeypatch.setattr(s, "analyze_business", boom)
    out = run_section("business", payload)
    assert out["title"] == "Business Analysis"
    assert out["metrics"] == {}
    assert out["summary"] == "Error generating analysis: boom"


def test_investment_style_section_combines_analyzers(payload):
    out = run_section("investment-style", payload)
    metrics = out["metrics"]
    assert {"valueMetrics", "qualityMetrics", "marketStyle", "fundamentalValue",
            "valueCreation", "growthQuality", "reinvestmentMetrics"} <= set(metrics)
    names = [i["metric"] for i in metrics["qualityMetrics"]]
    assert names.count("Capital Allocation") == 1
    assert "Business Quality" in names
    assert out["summary"].startswith("Operating margin of")


def test_run_all_sections_order(payload):
    results = run_all_sections(payload, s.recent_sample([{"value": 100}, {"value": 101}, {"value": 103}]))
    assert [r["id"] for r in results] == EXPECTED_IDS == section_ids()
    assert all("title" in r and "summary" in r for r in results)
    sentiment = results[-1]
    assert len(sentiment["indicators"]) == 5


def test_analyze_asset(trending_history, raw_fundamentals):
    out = analyze_asset("AAPL", trending_history, raw_fundamentals)
    assert out["symbol"] == "AAPL"
    assert out["points"] == 260
    assert out["technicals"]["movingAverages"]["sma200"] is not None
    assert out["technicalSummary"]["trend"]["signal"] == "bullish"
    assert isinstance(out["patterns"], list)
    assert out["fundamentals"]["financialData"]["currentPrice"] == 100.0
    assert len(out["sections"]) == len(framework.SECTIONS)


def test_analyze_asset_without_fundamentals(trending_history):
    out = analyze_asset("XYZ", trending_history, {"currentPrice": None})
    assert out["fundamentals"] is None
    assert out["sections"][0]["summary"] == NO_DATA
    lean = analyze_asset("XYZ", trending_history, include_sections=False)
    assert "sections" not in lean


def test_analyze_asset_empty_history():
    out = analyze_asset("XYZ", [], include_sections=False)
    assert out["points"] == 0
    assert out["technicalSummary"] is None
    assert out["patterns"] == []


def test_plain_price_history_keeps_sentiment_section(raw_fundamentals):
    out = analyze_asset("X", [float(v) for v in range(1, 60)], raw_fundamentals)
    sentiment = out["sections"][-1]
    assert sentiment["summary"].startswith("Institutional positioning")
    assert sentiment["indicators"][-1]["indicator"] == "Price Momentum"
    assert sentiment["indicators"][-1]["value"] == "3.51%"  # 57 -> 59


def test_macro_labels(payload):
    groups = s.analyze_macro(payload)
    # fixture: beta 1.3, 25% yearly return vs 8% for the S&P, forward PE 28
    assert _metric(groups, "marketEnvironment", "Market Sensitivity")["impact"] == "Cyclical"
    assert _metric(groups, "marketEnvironment", "Market Performance")["impact"] == "Strong"
    assert _metric(groups, "valuationCycle", "Valuation Level")["impact"] == "Premium"

    calm = s.analyze_macro(_stats(payload, {"beta": 1.1, "forwardPE": 19.9, "52WeekChange": 0.08}))
    assert _metric(calm, "marketEnvironment", "Market Sensitivity")["impact"] == "Defensive"
    assert _metric(calm, "marketEnvironment", "Market Performance")["impact"] == "Weak"  # equal is not ahead
    assert _metric(calm, "valuationCycle", "Valuation Level")["impact"] == "Attractive"

    at_limit = s.analyze_macro(_stats(payload, {"beta": 1.2, "forwardPE": 20.0}))
    assert _metric(at_limit, "marketEnvironment", "Market Sensitivity")["impact"] == "Cyclical"
    assert _metric(at_limit, "valuationCycle", "Valuation Level")["impact"] == "Premium"


def test_enhanced_macro_cycle_and_sector(payload):
    groups = s.enhanced_macro(payload)
    phase = _metric(groups, "economicCycle", "Market Phase Indicators")
    assert phase["value"] == "4/8"  # forward PE below trailing, positive year
    assert phase["impact"] == "Moderate"
    assert _metric(groups, "sectorAnalysis", "Sector Positioning")["impact"] == "Strong"

    six = _metric(s.enhanced_macro(_stats(payload, {"beta": 0.9})), "economicCycle", "Market Phase Indicators")
    assert six["value"] == "6/8"
    assert six["impact"] == "Moderate"
    eight = _metric(
        s.enhanced_macro(_stats(payload, {"beta": 0.9, "heldPercentInstitutions": 0.75})),
        "economicCycle", "Market Phase Indicators",
    )
    assert eight["value"] == "8/8"
    assert eight["impact"] == "Strong"

    lagging = s.enhanced_macro(_stats(payload, {"52WeekChange": 0.05}))
    assert _metric(lagging, "sectorAnalysis", "Sector Positioning")["impact"] == "Moderate"
    assert _metric(lagging, "marketEnvironment", "Market Performance")["impact"] == "Market Aligned"


def test_trading_labels(payload):
    groups = s.analyze_trading(payload)
    assert _metric(groups, "technicalSignals", "Price Momentum")["impact"] == "Bullish"
    assert _metric(groups, "optionsMetrics", "Volatility Profile")["impact"] == "High Premium"
    assert _metric(groups, "volumeAnalysis", "Volume Trend")["impact"] == "Normal"  # 5% default short interest

    edge = s.analyze_trading(_stats(payload, {"52WeekChange": 0.0, "beta": 1.2, "shortPercentOfFloat": 0.15}))
    assert _metric(edge, "technicalSignals", "Price Momentum")["impact"] == "Bearish"
    assert _metric(edge, "optionsMetrics", "Volatility Profile")["impact"] == "Low Premium"
    assert _metric(edge, "volumeAnalysis", "Volume Trend")["impact"] == "Normal"

    shorted = s.analyze_trading(_stats(payload, {"shortPercentOfFloat": 0.16}))
    assert _metric(shorted, "volumeAnalysis", "Volume Trend")["impact"] == "High Short Interest"


def test_enhanced_trading_technical_setup(payload):
    def setup(values):
        groups = s.enhanced_trading(_stats(payload, values))
        return _metric(groups, "technicalSignals", "Technical Setup")

    # slight uptrend +1, ahead of the market +2, balanced beta +2, institutions +2
    strong = {"52WeekChange": 0.05, "SandP52WeekChange": 0.0, "beta": 1.0, "heldPercentInstitutions": 0.75}
    assert setup(strong)["impact"] == "Strong"
    assert setup(strong)["value"] == "7/10"
    assert setup(dict(strong, heldPercentInstitutions=0.62))["impact"] == "Moderate"  # 5 points
    assert setup(dict(strong, heldPercentInstitutions=0.62, beta=1.3))["impact"] == "Weak"  # 3 points

    momentum = _metric(s.enhanced_trading(payload), "momentumFactors", "Momentum Score")
    assert momentum["impact"] == "Strong"
    flat = _metric(s.enhanced_trading(_stats(payload, {"52WeekChange": 0.2})), "momentumFactors", "Momentum Score")
    assert flat["impact"] == "Moderate"


def test_trading_section_replaces_basic_groups(payload):
    metrics = run_section("trading", payload)["metrics"]
    assert set(metrics) == {
        "technicalSignals", "optionsMetrics", "volumeAnalysis",
        "optionsAnalysis", "momentumFactors", "summary",
    }
    # the enhanced technicalSignals group replaces the basic one whole
    assert [i["metric"] for i in metrics["technicalSignals"]] == [
        "Technical Setup", "Volatility Profile", "Volume Trend"]
    assert [i["metric"] for i in metrics["optionsMetrics"]] == ["Volatility Profile"]
    assert metrics["volumeAnalysis"][0]["impact"] == "Normal"


def test_macro_section_uses_enhanced_groups(payload):
    metrics = run_section("macro", payload)["metrics"]
    assert set(metrics) == {
        "marketEnvironment", "valuationCycle", "economicCycle",
        "sectorAnalysis", "macroCorrelations", "summary",
    }
    # enhanced market sensitivity reads the beta band, not the defensive/cyclical split
    assert _metric(metrics, "marketEnvironment", "Market Sensitivity")["impact"] == "Moderate"
    assert len(metrics["valuationCycle"]) == 1
