"""
Section analyzers over a normalized fundamentals payload.

Every analyzer takes the payload produced by ``build_fundamentals_payload`` and
returns a dict of named groups, each a list of items:

    {"metric": str, "value": str, "analysis": str, "impact": str}

Sentiment and technical analyzers return flat lists of
``{"indicator", "value", "analysis", "signal"}`` items instead.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from marketlens.core.formatting import (
    format_currency,
    format_fixed,
    format_number,
    format_percent,
    safe_ratio,
    to_float,
)
from marketlens.analysis.industry import (
    ANALYSIS_THRESHOLDS,
    compare_to_industry,
    detect_industry,
    industry_avg_revenue,
    industry_metric,
    market_leadership,
)
from marketlens.analysis import metrics as m
from marketlens.analysis.scoring import AnalysisScorer, Scorecard
from marketlens.signals.indicators import price_series
from marketlens.signals.summary import price_momentum

Item = Dict[str, str]
Groups = Dict[str, List[Item]]


def _split(payload: Dict[str, Any]):
    return payload["financialData"], payload["keyStats"]


def _n(d: Dict[str, Any], key: str, default: float = 0.0) -> float:
    v = to_float(d.get(key))
    return default if v is None else v


def _item(metric: str, value: str, analysis: str, impact: str) -> Item:
    return {"metric": metric, "value": value, "analysis": analysis, "impact": impact}


def _indicator(indicator: str, value: str, analysis: str, signal: str) -> Item:
    return {"indicator": indicator, "value": value, "analysis": analysis, "signal": signal}


def _describe(name: str, card: Scorecard) -> str:
    return f"{name} score {card.label()} calculated from: {card.detail}"


# Executive summary

def analyze_summary_dashboard(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    fwd_pe = _n(ks, "forwardPE")
    growth = _n(fd, "revenueGrowth")
    change = _n(ks, "52WeekChange")
    spx = _n(ks, "SandP52WeekChange")
    rec = _n(fd, "recommendationMean", 3.0)
    beta = _n(ks, "beta", 1.0)
    de = _n(fd, "debtToEquity")
    risk = AnalysisScorer.risk_metrics(fd, ks)

    groups: Groups = {
        "valuation": [
            _item(
                "Market Valuation",
                f"{fwd_pe:.2f}x P/E",
                f"Trading at {fwd_pe:.2f}x forward earnings with {format_percent(growth)} revenue growth",
                "Positive" if fwd_pe < 20 else "Neutral",
            ),
            _item(
                "Growth & Margins",
                f"{format_percent(growth)} Growth",
                f"Revenue growing {format_percent(growth)} on "
                f"{format_percent(fd.get('operatingMargins'))} operating margins",
                "Strong" if growth > 0.15 else "Moderate",
            ),
        ],
        "performance": [
            _item(
                "Market Performance",
                f"{format_percent(change)} YTD",
                f"Returned {format_percent(change)} over 52 weeks against "
                f"{format_percent(spx)} for the S&P 500",
                "Strong" if change > spx else "Moderate",
            ),
            _item(
                "Analyst View",
                str(fd.get("recommendationKey", "hold")).upper(),
                f"{int(_n(fd, 'numberOfAnalystOpinions'))} analysts cover the name, "
                f"median target ${_n(fd, 'targetMedianPrice'):.2f}",
                "Positive" if rec < 2.5 else "Neutral",
            ),
        ],
        "risk": [
            _item(
                "Risk Profile",
                f"Beta: {beta:.2f}",
                f"Beta of {beta:.2f} with {format_percent(ks.get('heldPercentInstitutions'))} "
                "held by institutions",
                "Low Risk" if beta < 1.2 else "High Risk",
            ),
            _item(
                "Financial Health",
                f"D/E: {format_fixed(de, 2, '%')}",
                f"Debt/equity of {format_fixed(de, 2, '%')} and return on equity of "
                f"{format_percent(fd.get('returnOnEquity'))}",
                "Strong" if de < 100 else "Caution",
            ),
        ],
    }

    flags = ", ".join(risk.flags) if risk.flags else "no major risk flags"
    groups["summaryView"] = [
        _item(
            "Summary View",
            f"Risk score {risk.label()}",
            f"{detect_industry(fd).title()} profile at {fwd_pe:.2f}x forward earnings, "
            f"{format_percent(growth)} revenue growth and "
            f"{'outperforming' if change > spx else 'lagging'} the market. "
            f"Leverage {risk.details['leverage'].lower()}, liquidity "
            f"{risk.details['liquidity'].lower()}; {flags}.",
            "Overview",
        )
    ]
    return groups


# Business

def analyze_business(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    revenue = _n(fd, "totalRevenue")
    rd_intensity = _n(fd, "researchAndDevelopment") / (revenue or 1)
    avg_growth = industry_metric(fd, "avgRevenueGrowth") or 0.0
    growth_gap = _n(fd, "revenueGrowth") - avg_growth
    avg_gm = industry_metric(fd, "avgGrossMargin") or 0.0
    avg_opm = industry_metric(fd, "avgOperatingMargin") or 0.0
    wc_days = _n(fd, "totalCurrentAssets") / (revenue or 1) * 365
    effectiveness = m.strategic_effectiveness(fd)
    capex = to_float(fd.get("capitalExpenditures"))
    investment_ratio = _n(fd, "freeCashflow") / capex if capex else None
    insiders = _n(ks, "heldPercentInsiders")

    return {
        "competitivePosition": [
            _item(
                "R&D Investment",
                format_percent(rd_intensity),
                f"R&D intensity of {format_percent(rd_intensity)} against a 5.00% benchmark. "
                + ("Innovation spend runs above average"
                   if rd_intensity > 0.05 else "Spend looks like maintenance innovation"),
                "Strong" if rd_intensity > 0.05 else "Moderate",
            ),
            _item(
                "Market Share Momentum",
                f"{growth_gap * 100:.1f}%",
                f"Growth premium of {growth_gap * 100:.1f}% over peers. "
                + ("Share gains point to a competitive edge"
                   if growth_gap > 0 else "Share trajectory suggests competitive pressure"),
                "Strong" if growth_gap > 0 else "Moderate",
            ),
            _item(
                "Market Leadership",
                format_currency(revenue),
                f"Revenue of {format_currency(revenue)} vs industry average of "
                f"{format_currency(industry_avg_revenue(fd))}",
                market_leadership(fd),
            ),
            _item(
                "Pricing Power",
                format_percent(fd.get("grossMargins")),
                f"Gross margin of {format_percent(fd.get('grossMargins'))} vs industry "
                f"{format_percent(avg_gm)}. "
                + compare_to_industry(fd, "avgGrossMargin", fd.get("grossMargins")),
                "Strong" if _n(fd, "grossMargins") > avg_gm else "Moderate",
            ),
        ],
        "operationalEfficiency": [
            _item(
                "Working Capital Efficiency",
                format_number(wc_days),
                f"Working capital cycle of {format_number(wc_days)} days vs 75 day benchmark",
                "Strong" if wc_days < 75 else "Moderate",
            ),
            _item(
                "Asset Utilization",
                format_percent(fd.get("returnOnAssets")),
                f"ROA of {format_percent(fd.get('returnOnAssets'))} vs 8.00% benchmark",
                "Strong" if _n(fd, "returnOnAssets") > 0.08 else "Moderate",
            ),
            _item(
                "Operating Efficiency",
                format_percent(fd.get("operatingMargins")),
                f"Operating margin of {format_percent(fd.get('operatingMargins'))} vs industry "
                f"{format_percent(avg_opm)}",
                "Strong" if _n(fd, "operatingMargins") > avg_opm else "Moderate",
            ),
        ],
        "managementEffectiveness": [
            _item(
                "Strategic Execution",
                format_percent(effectiveness),
                f"Effectiveness of {format_percent(effectiveness)} from margin expansion, "
                "relative growth and cash flow progression",
                "Strong" if effectiveness > 0.7 else "Moderate",
            ),
            _item(
                "Investment Efficiency",
                format_percent(investment_ratio),
                f"Free cash flow to capex of {format_percent(investment_ratio)} vs 120% benchmark",
                "Strong" if investment_ratio is not None and investment_ratio > 1.2 else "Moderate",
            ),
            _item(
                "Capital Allocation",
                format_percent(fd.get("returnOnEquity")),
                f"ROE of {format_percent(fd.get('returnOnEquity'))} vs 15.00% benchmark",
                "Strong" if _n(fd, "returnOnEquity") > 0.15 else "Moderate",
            ),
            _item(
                "Insider Confidence",
                format_percent(insiders),
                f"Insiders hold {format_percent(insiders)}, institutions "
                f"{format_percent(ks.get('heldPercentInstitutions'))}",
                "Strong" if insiders > 0.1 else "Moderate",
            ),
        ],
    }


# Financials

def analyze_financials(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    revenue = _n(fd, "totalRevenue")
    avg_revenue = industry_avg_revenue(fd)
    avg_gm = industry_metric(fd, "avgGrossMargin") or 0.0
    avg_opm = industry_metric(fd, "avgOperatingMargin") or 0.0
    avg_growth = industry_metric(fd, "avgRevenueGrowth") or 0.0
    avg_pe = industry_metric(fd, "avgPERatio") or 0.0
    cash = _n(fd, "totalCash")
    debt = _n(fd, "totalDebt")
    fcf = _n(fd, "freeCashflow")
    de = _n(fd, "debtToEquity")
    fwd_pe = _n(ks, "forwardPE")
    ev_ebitda = _n(ks, "enterpriseToEbitda")
    change = _n(ks, "52WeekChange")
    spx = _n(ks, "SandP52WeekChange")

    return {
        "profitability": [
            _item(
                "Total Revenue",
                format_currency(revenue),
                f"Revenue of {format_currency(revenue)} with EBITDA of "
                f"{format_currency(fd.get('ebitda'))} vs industry {format_currency(avg_revenue)}",
                "Strong" if revenue > avg_revenue else "Moderate",
            ),
            _item(
                "Gross Margins",
                format_percent(fd.get("grossMargins")),
                f"Gross margin {format_percent(fd.get('grossMargins'))}, operating margin "
                f"{format_percent(fd.get('operatingMargins'))}",
                "Strong" if _n(fd, "grossMargins") > avg_gm else "Moderate",
            ),
            _item(
                "EBITDA Margins",
                format_percent(fd.get("ebitdaMargins")),
                f"EBITDA margin {format_percent(fd.get('ebitdaMargins'))} vs industry operating "
                f"margin {format_percent(avg_opm)}",
                "Strong" if _n(fd, "ebitdaMargins") > avg_opm else "Moderate",
            ),
        ],
        "growth": [
            _item(
                "Revenue Growth",
                format_percent(fd.get("revenueGrowth")),
                f"Revenue growth {format_percent(fd.get('revenueGrowth'))} vs industry "
                f"{format_percent(avg_growth)}",
                "Strong" if _n(fd, "revenueGrowth") > avg_growth else "Moderate",
            ),
            _item(
                "Earnings Growth",
                format_percent(ks.get("earningsQuarterlyGrowth")),
                f"Quarterly earnings growth of {format_percent(ks.get('earningsQuarterlyGrowth'))}",
                "Strong" if _n(ks, "earningsQuarterlyGrowth") > 0.10 else "Moderate",
            ),
            _item(
                "Per Share Metrics",
                f"${_n(ks, 'forwardEps'):.2f} Fwd EPS",
                f"Forward EPS ${_n(ks, 'forwardEps'):.2f} vs trailing ${_n(ks, 'trailingEps'):.2f}",
                "Strong" if _n(ks, "forwardEps") > _n(ks, "trailingEps") else "Moderate",
            ),
        ],
        "health": [
            _item(
                "Cash Position",
                format_currency(cash),
                f"Cash of {format_currency(cash)} against debt of {format_currency(debt)}",
                "Strong" if cash > debt * 0.5 else "Moderate",
            ),
            _item(
                "Cash Flow",
                format_currency(fcf),
                f"Free cash flow of {format_currency(fcf)}, operating cash flow "
                f"{format_currency(fd.get('operatingCashflow'))}",
                "Strong" if fcf > 0 else "Caution",
            ),
            _item(
                "Debt to Equity",
                format_fixed(de, 2, "%"),
                f"Debt/equity of {format_fixed(de, 2, '%')}",
                "Strong" if de < 100 else "Caution",
            ),
        ],
        "valuation": [
            _item(
                "Forward P/E",
                f"{fwd_pe:.2f}x",
                f"Forward P/E {fwd_pe:.2f}x vs industry {avg_pe:g}x",
                "Positive" if fwd_pe < avg_pe else "Neutral",
            ),
            _item(
                "Enterprise Value",
                format_currency(ks.get("enterpriseValue")),
                f"EV/EBITDA of {ev_ebitda:.2f}x, EV/revenue "
                f"{_n(ks, 'enterpriseToRevenue'):.2f}x",
                "Positive" if ev_ebitda < 15 else "Neutral",
            ),
            _item(
                "Market Performance",
                format_percent(change),
                f"52-week change {format_percent(change)} vs S&P 500 {format_percent(spx)}",
                "Strong" if change > spx else "Moderate",
            ),
        ],
    }


# Sentiment and technicals

def analyze_market_sentiment(payload: Dict[str, Any]) -> List[Item]:
    fd, ks = _split(payload)
    card = AnalysisScorer.sentiment(fd, ks)
    price = _n(fd, "currentPrice")
    target = _n(fd, "targetMedianPrice")
    rec = _n(fd, "recommendationMean", 3.0)
    inst = _n(ks, "heldPercentInstitutions")
    upside = safe_ratio(target - price, price)
    overall = (
        "strong positive" if card.score > 7
        else "moderately positive" if card.score > 5
        else "neutral"
    )
    key = str(fd.get("recommendationKey", "hold")).upper()

    return [
        _indicator(
            "Analyst Consensus",
            key,
            f"{int(_n(fd, 'numberOfAnalystOpinions'))} analysts with mean rating {rec:.2f} "
            f"vs sector 2.50. {'Constructive' if rec < 2.5 else 'Neutral'} analyst sentiment",
            "Strong Buy" if rec < 2 else "Buy" if rec < 2.5 else "Hold",
        ),
        _indicator(
            "Price Targets",
            f"${target:.2f}",
            f"Median target implies {format_percent(upside)} upside; range "
            f"${_n(fd, 'targetLowPrice'):.2f}-${_n(fd, 'targetHighPrice'):.2f}",
            "Strong Upside" if target > price * 1.2
            else "Moderate Upside" if target > price
            else "Limited Upside",
        ),
        _indicator(
            "Ownership Profile",
            f"{format_percent(inst)} Inst.",
            f"Institutions hold {format_percent(inst)}, insiders "
            f"{format_percent(ks.get('heldPercentInsiders'))}",
            "Very Strong" if inst > 0.8 else "Strong" if inst > 0.6 else "Moderate",
        ),
        _indicator(
            "Sentiment Score",
            card.label(),
            f"{_describe('Sentiment', card)}. Consensus {key} with {format_percent(upside)} "
            f"target upside indicates {overall} overall sentiment.",
            "Overview",
        ),
    ]


def recent_sample(records: Optional[Sequence[Dict[str, Any]]], size: int = 3) -> Dict[str, Any]:
    return {"recentSample": list(records or [])[-size:]}


def analyze_technicals(history: Optional[Dict[str, Any]]) -> List[Item]:
    sample = (history or {}).get("recentSample")
    if not isinstance(sample, list) or len(sample) < 3:
        return []
    prices = price_series(sample)
    move = price_momentum(to_float(prices[0]), to_float(prices[-1]))
    if move is None:
        return []
    pct = move["percent"]
    return [
        _indicator(
            "Price Momentum",
            f"{pct:.2f}%",
            f"{'Positive' if pct > 0 else 'Negative'} short-term momentum",
            move["signal"],
        )
    ]


# Investment style

def analyze_investment_style(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    fwd_pe = _n(ks, "forwardPE")
    roe = _n(fd, "returnOnEquity")
    gm = _n(fd, "grossMargins")
    fcf = _n(fd, "freeCashflow")
    payout = _n(ks, "payoutRatio")
    beta = _n(ks, "beta", 1.0)

    return {
        "valueMetrics": [
            _item(
                "Buffett Value Criteria",
                f"P/E: {fwd_pe:.2f}, ROE: {format_percent(roe)}",
                "Meets value criteria" if fwd_pe < 15 and roe > 0.15 else "Outside classic value range",
                "Value" if fwd_pe < 15 and roe > 0.15 else "Growth",
            ),
            _item(
                "Moat Indicator",
                format_percent(gm),
                "High margins suggest a durable advantage" if gm > 0.4 else "Margins show limited pricing power",
                "Strong" if gm > 0.4 else "Moderate",
            ),
        ],
        "qualityMetrics": [
            _item(
                "Business Quality",
                format_percent(roe),
                f"Return on equity of {format_percent(roe)}",
                "High Quality" if roe > 0.15 else "Average Quality",
            ),
            _item(
                "Capital Allocation",
                format_currency(fcf),
                f"Free cash flow of {format_currency(fcf)} with {format_percent(payout)} payout",
                "Strong" if fcf > 0 and payout < 0.75 else "Caution",
            ),
        ],
        "marketStyle": [
            _item("Investment Style", m.investment_style(fd, ks), m.style_narrative(fd, ks), "Overview"),
            _item(
                "Market Positioning",
                f"Beta: {beta:.2f}",
                m.market_position(ks),
                m.beta_profile(beta),
            ),
        ],
    }


def _framework_summary(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    moat = m.moat_score(fd)
    roic = m.roic(fd)
    avg_opm = (industry_metric(fd, "avgOperatingMargin") or 0.0) * 100
    return (
        f"Operating margin of {_n(fd, 'operatingMargins') * 100:.2f}% against an industry "
        f"{avg_opm:.2f}%, ROE of {_n(fd, 'returnOnEquity') * 100:.2f}% and ROIC of "
        f"{roic * 100:.2f}%. Moat score {moat.score}/10 and a "
        f"{m.investment_style(fd, ks).lower()} profile. {m.capital_efficiency(fd)}."
    )


def enhanced_investment_style(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    fwd_pe = _n(ks, "forwardPE")
    gm = _n(fd, "grossMargins")
    fcf = _n(fd, "freeCashflow")
    payout = _n(ks, "payoutRatio")
    moat = m.moat_score(fd)
    eva = m.eva_spread(fd)

    return {
        "valueMetrics": [
            _item(
                "Buffett Value Criteria",
                f"P/E: {fwd_pe:.2f}",
                f"Forward P/E of {fwd_pe:.2f}x vs a 20x reference. "
                + ("Premium valuation prices in above-average growth"
                   if fwd_pe > 20 else "Valuation sits within value parameters"),
                "Value" if fwd_pe < 20 else "Growth",
            ),
            _item(
                "Moat Indicator",
                format_percent(gm),
                f"Gross margin of {format_percent(gm)} vs a 45% reference",
                "Strong" if gm > 0.45 else "Moderate",
            ),
        ],
        "qualityMetrics": [
            _item(
                "Capital Allocation",
                format_currency(fcf),
                f"Free cash flow of {format_currency(fcf)} with {format_percent(payout)} payout",
                "Strong" if fcf > 0 and payout < 0.75 else "Caution",
            ),
        ],
        "marketStyle": [
            _item(
                "Investment Style",
                m.investment_style(fd, ks),
                f"{format_percent(fd.get('revenueGrowth'))} revenue growth at {fwd_pe:.2f}x forward earnings",
                m.style_impact(fd, ks),
            ),
        ],
        "fundamentalValue": [
            _item(
                "Enhanced Moat Analysis",
                f"{moat.score}/10",
                f"Moat score {moat.score}/10 vs a 5/10 benchmark",
                "Strong" if moat.score > 5 else "Moderate",
            ),
        ],
        "valueCreation": [
            _item(
                "Value Creation",
                format_percent(eva),
                m.value_creation(fd),
                "Strong" if eva > 0.02 else "Moderate",
            ),
        ],
        "summary": [
            _item(
                "Investment Framework Summary",
                "Comprehensive Analysis",
                _framework_summary(fd, ks),
                "Overview",
            )
        ],
    }


def analyze_value_metrics(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    moat = m.moat_score(fd)
    if moat.score > 7:
        moat_text = "Exceptional moat characteristics"
    elif moat.score > 5:
        moat_text = "Strong competitive advantages"
    elif moat.score > 3:
        moat_text = "Moderate competitive position"
    else:
        moat_text = "Limited competitive advantages"
    reasons = ", ".join(moat.reasons) or "none identified"
    cash_rich = _n(fd, "freeCashflow") > _n(fd, "netIncome")
    eva = m.eva_spread(fd)

    return {
        "fundamentalValue": [
            _item(
                "Enhanced Moat Analysis",
                f"{moat.score}/10",
                f"Competitive advantages: {reasons}. {moat_text}. "
                + compare_to_industry(fd, "avgOperatingMargin", fd.get("operatingMargins")),
                "Strong" if moat.score > 5 else "Moderate",
            ),
            _item(
                "Owner Earnings",
                format_currency(m.owner_earnings(fd)),
                f"Owner earnings indicate {'strong' if cash_rich else 'moderate'} cash generation",
                "Strong" if cash_rich else "Moderate",
            ),
        ],
        "valueCreation": [
            _item(
                "Capital Efficiency",
                format_percent(fd.get("returnOnEquity")),
                f"ROE {format_percent(fd.get('returnOnEquity'))}, ROIC "
                f"{format_percent(m.roic(fd))} ({format_percent(m.detailed_roic(fd))} after tax). "
                f"{m.capital_efficiency(fd)}",
                "Strong" if _n(fd, "returnOnEquity") > 0.15 else "Moderate",
            ),
            _item(
                "Value Generation",
                format_percent(eva),
                m.value_creation(fd),
                "Strong" if eva > 0.05 else "Moderate",
            ),
        ],
    }


def analyze_growth_quality(payload: Dict[str, Any]) -> Groups:
    fd, _ = _split(payload)
    score = m.growth_score(fd)
    reinvestment = m.reinvestment_rate(fd)
    return {
        "growthQuality": [
            _item(
                "Organic Growth",
                format_percent(fd.get("revenueGrowth")),
                f"Revenue growth {format_percent(fd.get('revenueGrowth'))}, earnings growth "
                f"{format_percent(fd.get('earningsGrowth'))}. {m.growth_trend(fd)}",
                m.growth_quality(fd),
            ),
            _item(
                "Growth Sustainability",
                f"{score}/5",
                f"Growth quality score indicates {'sustainable' if score > 3 else 'moderate'} growth",
                "Strong" if score > 3 else "Moderate",
            ),
        ],
        "reinvestmentMetrics": [
            _item(
                "Reinvestment Rate",
                format_percent(reinvestment),
                f"Capital reinvestment indicates {'strong' if reinvestment > 0.15 else 'moderate'} "
                "growth investment",
                "Strong" if reinvestment > 0.15 else "Moderate",
            ),
        ],
    }


# Macro

def analyze_macro(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    beta = _n(ks, "beta", 1.0)
    change = _n(ks, "52WeekChange")
    spx = _n(ks, "SandP52WeekChange")
    fwd_pe = _n(ks, "forwardPE")
    beta_limit = ANALYSIS_THRESHOLDS["RISK"]["BETA"]
    sensitivity = "high" if beta > beta_limit else "low" if beta < 0.8 else "moderate"

    return {
        "marketEnvironment": [
            _item(
                "Market Sensitivity",
                f"{beta:.2f}",
                f"Beta of {beta:.2f} indicates {sensitivity} sensitivity to market moves",
                "Defensive" if beta < beta_limit else "Cyclical",
            ),
            _item(
                "Market Performance",
                format_percent(change),
                f"{format_percent(change)} return vs S&P 500 {format_percent(spx)} shows "
                f"{'outperformance' if change > spx else 'underperformance'}",
                "Strong" if change > spx else "Weak",
            ),
        ],
        "valuationCycle": [
            _item(
                "Valuation Level",
                f"{fwd_pe:.2f}x",
                f"Forward P/E of {fwd_pe:.2f}x with quarterly earnings growth of "
                f"{format_percent(ks.get('earningsQuarterlyGrowth'))}",
                "Attractive" if fwd_pe < 20 else "Premium",
            ),
        ],
    }


def _macro_summary(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    score = m.cycle_score(ks)
    beta = _n(ks, "beta", 1.0)
    gap = _n(ks, "52WeekChange") - _n(ks, "SandP52WeekChange")
    dta = m.debt_to_assets(fd)
    sector = detect_industry(fd)
    relative = (
        f"outperforming the S&P 500 by {gap * 100:.1f}%" if gap > 0
        else f"underperforming the S&P 500 by {abs(gap) * 100:.1f}%"
    )
    return (
        f"Indicators point to {m.cycle_phase(score)}-cycle conditions ({score}/8). "
        f"{sector} classification with beta {beta:.2f}; debt-to-assets of {dta:.2f} implies "
        f"{'minimal' if dta < 0.1 else 'significant'} rate risk. Positioning is "
        f"{'favorable' if gap > 0 else 'challenging'}, {relative}. "
        f"Size positions for {'higher' if beta > 1 else 'lower'} than market volatility."
    )


def enhanced_macro(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    beta = _n(ks, "beta", 1.0)
    change = _n(ks, "52WeekChange")
    spx = _n(ks, "SandP52WeekChange")
    fwd_pe = _n(ks, "forwardPE")
    avg_pe = industry_metric(fd, "avgPERatio") or 0.0
    score = m.cycle_score(ks)
    dta = m.debt_to_assets(fd)
    gdp_beta = m.gdp_beta(fd)
    transmission = m.price_transmission(fd)
    fx = m.fx_exposure(fd)

    return {
        "marketEnvironment": [
            _item(
                "Market Sensitivity",
                f"{beta:.2f}",
                f"Beta of {beta:.2f} vs market 1.00",
                m.beta_impact(beta),
            ),
            _item(
                "Market Performance",
                format_percent(change),
                f"Return of {format_percent(change)} vs S&P 500 {format_percent(spx)}",
                m.performance_impact(ks),
            ),
        ],
        "valuationCycle": [
            _item(
                "Valuation Level",
                f"{fwd_pe:.2f}x",
                f"Forward P/E of {fwd_pe:.2f}x vs sector {avg_pe:g}x",
                m.valuation_impact(fd, ks),
            ),
        ],
        "economicCycle": [
            _item(
                "Market Phase Indicators",
                f"{score}/8",
                f"Cycle score {score}/8 from PE trend, beta, momentum and ownership; "
                f"{m.cycle_phase(score)}-cycle reading",
                "Strong" if score > 6 else "Moderate",
            ),
            _item(
                "Rate Sensitivity",
                format_fixed(dta),
                f"Debt/assets of {dta:.2f}",
                m.rate_impact(fd),
            ),
        ],
        "sectorAnalysis": [
            _item(
                "Sector Positioning",
                detect_industry(fd),
                f"{detect_industry(fd)} sector "
                + ("showing relative strength" if change > spx else "lagging the broad market"),
                "Strong" if change > spx else "Moderate",
            ),
        ],
        "macroCorrelations": [
            _item(
                "GDP Sensitivity",
                f"{gdp_beta:.2f}x",
                f"Revenue growth runs at {gdp_beta:.2f}x baseline GDP growth",
                m.gdp_impact(fd),
            ),
            _item(
                "Inflation Exposure",
                format_percent(transmission),
                f"Price transmission ratio of {format_percent(transmission)}",
                m.pricing_impact(fd),
            ),
            _item(
                "Currency Exposure",
                format_percent(fx),
                f"Estimated foreign revenue exposure of {format_percent(fx)}",
                m.fx_impact(fd),
            ),
        ],
        "summary": [
            _item("Macro Summary", "Comprehensive Analysis", _macro_summary(fd, ks), "Overview"),
        ],
    }


# Trading

def analyze_trading(payload: Dict[str, Any]) -> Groups:
    _, ks = _split(payload)
    change = _n(ks, "52WeekChange")
    beta = _n(ks, "beta", 1.0)
    short = _n(ks, "shortPercentOfFloat")
    return {
        "technicalSignals": [
            _item(
                "Price Momentum",
                format_percent(change),
                f"52-week performance shows {'positive' if change > 0 else 'negative'} momentum",
                "Bullish" if change > 0 else "Bearish",
            ),
        ],
        "optionsMetrics": [
            _item(
                "Volatility Profile",
                f"{beta:.2f}",
                f"Beta of {beta:.2f} suggests "
                f"{'high' if beta > 1.5 else 'low' if beta < 0.8 else 'moderate'} options premium",
                "High Premium" if beta > 1.2 else "Low Premium",
            ),
        ],
        "volumeAnalysis": [
            _item(
                "Volume Trend",
                format_number(ks.get("floatShares")),
                f"Float of {format_number(ks.get('floatShares'))} shares with "
                f"{format_percent(short)} short interest",
                "High Short Interest" if short > 0.15 else "Normal",
            ),
        ],
    }


def enhanced_trading(payload: Dict[str, Any]) -> Groups:
    _, ks = _split(payload)
    technical = AnalysisScorer.technical(ks)
    options = AnalysisScorer.options(ks)
    volume = AnalysisScorer.volume(ks)
    momentum = AnalysisScorer.momentum(ks)
    change = _n(ks, "52WeekChange")
    spx = _n(ks, "SandP52WeekChange")
    beta = _n(ks, "beta", 1.0)
    pcr = _n(ks, "putCallRatio", 1.0)
    overall = (technical.ratio + options.ratio + volume.ratio) / 3 * 100

    return {
        "technicalSignals": [
            _item(
                "Technical Setup",
                technical.label(),
                _describe("Technical", technical),
                "Strong" if technical.score >= 7 else "Moderate" if technical.score >= 5 else "Weak",
            ),
            _item(
                "Volatility Profile",
                f"{beta:.2f}",
                f"Beta of {beta:.2f}, implied volatility "
                f"{format_percent(_n(ks, 'impliedVolatility', 0.3))}",
                "High" if beta > 1.5 else "Low" if beta < 0.8 else "Moderate",
            ),
            _item(
                "Volume Trend",
                format_number(ks.get("floatShares")),
                _describe("Volume", volume),
                "Strong" if volume.score >= 4 else "Moderate" if volume.score >= 2 else "Weak",
            ),
        ],
        "optionsAnalysis": [
            _item(
                "Options Sentiment",
                f"{options.label()} ({pcr:.2f} PCR)",
                f"{_describe('Options sentiment', options)}. Put/call of {pcr:.2f} suggests "
                f"{'defensive' if pcr > 1 else 'constructive'} positioning",
                "Bullish" if options.score >= 4 else "Neutral" if options.score >= 2 else "Bearish",
            ),
            _item(
                "Volatility Structure",
                f"{beta * 100:.0f}% ({beta:.2f} beta)",
                f"{'Above-average' if beta > 1.2 else 'Moderate'} market sensitivity",
                "High" if beta > 1.5 else "Low" if beta < 0.8 else "Moderate",
            ),
        ],
        "momentumFactors": [
            _item(
                "Momentum Score",
                format_percent(change),
                f"{_describe('Momentum', momentum)}. "
                f"{'Outperforming' if change > spx else 'Underperforming'} the S&P 500",
                "Strong" if change > 0.2 else "Moderate" if change > 0 else "Weak",
            ),
        ],
        "summary": [
            _item(
                "Trading Summary",
                f"{overall:.1f}% Overall",
                f"{_describe('Technical', technical)}. {_describe('Options sentiment', options)}. "
                f"{_describe('Volume', volume)}. "
                f"{'Outperforming' if change > spx else 'Underperforming'} with "
                f"{'above-average' if beta > 1.2 else 'moderate'} volatility and "
                f"{'elevated' if _n(ks, 'shortRatio', 2.0) > 5 else 'normal'} short interest.",
                "Overview",
            ),
        ],
    }


# Risk

def analyze_risk(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    beta = _n(ks, "beta", 1.0)
    de = _n(fd, "debtToEquity")
    cr = _n(fd, "currentRatio")
    opm = _n(fd, "operatingMargins")
    risk = ANALYSIS_THRESHOLDS["RISK"]
    de_limit = risk["DEBT_TO_EQUITY"] * 100

    return {
        "marketRisk": [
            _item(
                "Volatility Risk",
                f"{beta:.2f}",
                f"Beta of {beta:.2f} indicates "
                f"{'above-market' if beta > risk['BETA'] else 'below-market'} volatility",
                "High Risk" if beta > risk["BETA"] else "Moderate Risk",
            ),
        ],
        "financialRisk": [
            _item(
                "Leverage Risk",
                format_fixed(de, 2, "%"),
                f"Debt/equity of {format_fixed(de, 2, '%')} shows "
                f"{'high' if de > de_limit else 'moderate'} leverage",
                "High Risk" if de > de_limit else "Moderate Risk",
            ),
            _item(
                "Liquidity Risk",
                format_fixed(cr),
                f"Current ratio of {cr:.2f} indicates "
                f"{'strong' if cr > risk['CURRENT_RATIO'] else 'adequate' if cr > 1 else 'weak'} liquidity",
                "Low Risk" if cr > risk["CURRENT_RATIO"] else "High Risk",
            ),
        ],
        "businessRisk": [
            _item(
                "Operating Risk",
                format_percent(opm),
                f"Operating margin of {format_percent(opm)} shows "
                f"{'strong' if opm > ANALYSIS_THRESHOLDS['VALUE']['OPERATING_MARGIN'] else 'moderate'} stability",
                "Low Risk" if opm > ANALYSIS_THRESHOLDS["VALUE"]["OPERATING_MARGIN"] else "High Risk",
            ),
        ],
    }


def enhanced_risk(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    beta = _n(ks, "beta", 1.0)
    hist_vol = _n(ks, "historicalVolatility", 0.25)
    de = _n(fd, "debtToEquity")
    cr = _n(fd, "currentRatio")
    opm = _n(fd, "operatingMargins")
    fcf = _n(fd, "freeCashflow")
    inst = _n(ks, "heldPercentInstitutions")
    tail_beta = _n(ks, "tailBeta", 1.2)
    sheet = AnalysisScorer.balance_sheet(fd)
    coverage = _n(fd, "ebit") / (_n(fd, "interestExpense") or 1)

    return {
        "marketRisk": [
            _item(
                "Beta-Adjusted Risk",
                f"{beta:.2f}",
                f"{'Above-average' if beta > 1.2 else 'Moderate'} systemic exposure at beta {beta:.2f}",
                "High Risk" if beta > 1.5 else "Low Risk" if beta < 0.8 else "Moderate Risk",
            ),
            _item(
                "Volatility Risk",
                format_percent(hist_vol),
                f"Historical volatility of {format_percent(hist_vol)} vs peer 20%",
                "High Risk" if hist_vol > 0.3 else "Moderate Risk",
            ),
        ],
        "financialRisk": [
            _item(
                "Leverage Risk",
                format_fixed(de, 2, "%"),
                f"Debt/equity {format_fixed(de, 2, '%')}, interest coverage {coverage:.1f}x",
                "High Risk" if de > 70 else "Moderate Risk" if de > 40 else "Low Risk",
            ),
            _item(
                "Liquidity Risk",
                format_fixed(cr),
                f"Current ratio {cr:.2f}x, quick ratio {_n(fd, 'quickRatio'):.2f}x",
                "High Risk" if cr < 1.2 else "Moderate Risk",
            ),
        ],
        "businessRisk": [
            _item(
                "Operating Risk",
                f"{opm * 100:.2f}%",
                f"{'Below-average' if opm < 0.15 else 'Adequate'} operational stability",
                "High Risk" if opm < 0.10 else "Moderate Risk",
            ),
        ],
        "fundamentalRisk": [
            _item(
                "Balance Sheet Risk",
                sheet.label(),
                _describe("Balance sheet", sheet),
                "High Risk" if sheet.score < 3 else "Low Risk" if sheet.score > 4 else "Moderate Risk",
            ),
            _item(
                "Cash Flow Risk",
                format_currency(fcf),
                f"Free cash flow of {format_currency(fcf)}, conversion "
                f"{safe_ratio(fcf, fd.get('operatingCashflow')):.2f}x",
                "High Risk" if fcf < 0 else "Moderate Risk",
            ),
        ],
        "concentrationRisk": [
            _item(
                "Concentration Score",
                format_percent(inst),
                f"{'High' if inst > 0.8 else 'Moderate'} ownership concentration",
                "High Risk" if inst > 0.8 else "Moderate Risk",
            ),
        ],
        "tailRisk": [
            _item(
                "Tail Risk Exposure",
                f"{beta:.2f}",
                f"Tail beta of {tail_beta:.2f}, max drawdown "
                f"{format_percent(_n(ks, 'maxDrawdown', 0.3))}",
                "High Risk" if tail_beta > 1.5 else "Moderate Risk",
            ),
        ],
    }


# Monitoring

def analyze_monitoring(payload: Dict[str, Any]) -> Groups:
    fd, ks = _split(payload)
    price = _n(fd, "currentPrice")
    target = _n(fd, "targetMedianPrice")
    change = _n(ks, "52WeekChange")
    rev = _n(fd, "revenueGrowth")
    earn = _n(fd, "earningsGrowth")
    payout = _n(ks, "payoutRatio")
    rec = _n(fd, "recommendationMean", 3.0)
    beta = _n(ks, "beta", 1.0)
    analysts = int(_n(fd, "numberOfAnalystOpinions"))
    low = _n(fd, "targetLowPrice")
    high = _n(fd, "targetHighPrice")

    if target > price * 1.1:
        target_impact = "Positive"
    elif target < price * 0.9:
        target_impact = "Negative"
    else:
        target_impact = "Neutral"

    return {
        "priceTriggers": [
            _item(
                "Analyst Price Triggers",
                f"${target:.2f}",
                f"Median target ${target:.2f} (range ${low:.2f}-${high:.2f}) vs current ${price:.2f}; "
                f"{analysts or 'limited'} analysts covering",
                target_impact,
            ),
            _item(
                "Technical Triggers",
                f"{format_percent(change)} YTD",
                f"Support near ${_n(ks, 'fiftyTwoWeekLow') * 1.1:.2f}, resistance near "
                f"${_n(ks, 'fiftyTwoWeekHigh') * 0.9:.2f}",
                "Strong" if change > 0.2 else "Moderate" if change > 0 else "Weak",
            ),
        ],
        "fundamentalMonitoring": [
            _item(
                "Growth Dynamics",
                f"{format_percent(rev)} Rev / {format_percent(earn)} EPS",
                f"Operating leverage {safe_ratio(earn, rev):.2f}x",
                "Positive" if earn > rev else "Watch",
            ),
            _item(
                "Capital Returns",
                f"{format_percent(payout)} Payout",
                f"Dividend payout of {format_percent(payout)} vs 40% peer average",
                "Watch" if payout > 0.75 else "Sustainable",
            ),
        ],
        "riskMonitoring": [
            _item(
                "Risk Indicators",
                str(fd.get("recommendationKey", "hold")).upper(),
                f"Mean rating {rec:.2f}, short interest {format_percent(ks.get('shortPercentOfFloat'))}",
                "Positive" if rec < 2.5 else "Neutral" if rec < 3 else "Caution",
            ),
            _item(
                "Volatility Alerts",
                f"{beta * 100:.0f}% Vol",
                f"Implied volatility {format_percent(_n(ks, 'impliedVolatility', 0.3))}",
                "High Vol" if beta > 1.5 else "Low Vol" if beta < 0.8 else "Normal Vol",
            ),
        ],
        "summary": [
            _item(
                "Monitoring Framework",
                "Key Triggers",
                f"Watching targets ${low:.2f}-${high:.2f}, growth (rev {format_percent(rev)} / "
                f"EPS {format_percent(earn)}) and {analysts} analyst ratings.",
                "Ongoing",
            ),
        ],
    }
