from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

from marketlens.core.formatting import to_float
from marketlens.analysis.industry import (
    VALUATION_THRESHOLDS,
    industry_avg_revenue,
    industry_metric,
)

WACC = 0.08
TAX_RATE = 0.21
BASE_GDP_GROWTH = 0.025


def _f(d: Dict[str, Any], key: str, default: float = 0.0) -> float:
    v = to_float(d.get(key))
    return default if v is None else v


def owner_earnings(fd: Dict[str, Any]) -> float:
    """Buffett owner earnings: net income + D&A - capex."""
    return _f(fd, "netIncome") + _f(fd, "depreciation") - _f(fd, "capitalExpenditures")


def roic(fd: Dict[str, Any]) -> float:
    invested = _f(fd, "totalAssets") - _f(fd, "totalCurrentLiabilities")
    if invested == 0:
        return 0.0
    return _f(fd, "ebit") / invested


def detailed_roic(fd: Dict[str, Any]) -> float:
    nopat = _f(fd, "ebit") * (1 - TAX_RATE)
    working_capital = _f(fd, "totalCurrentAssets") - _f(fd, "totalCurrentLiabilities")
    fixed_assets = _f(fd, "totalAssets") - _f(fd, "totalCurrentAssets")
    invested = working_capital + fixed_assets
    if invested == 0:
        return 0.0
    return nopat / invested


def eva_spread(fd: Dict[str, Any]) -> float:
    return roic(fd) - WACC


def growth_score(fd: Dict[str, Any]) -> int:
    moderate = VALUATION_THRESHOLDS["GROWTH_RATES"]["MODERATE"]
    score = 0
    if _f(fd, "revenueGrowth") > moderate:
        score += 2
    if _f(fd, "earningsGrowth") > moderate:
        score += 2
    if _f(fd, "operatingMargins") > _f(fd, "grossMargins"):
        score += 1
    return score


def reinvestment_rate(fd: Dict[str, Any]) -> float:
    net_income = _f(fd, "netIncome")
    if not net_income:
        return 0.0
    return _f(fd, "capitalExpenditures") / net_income


def growth_trend(fd: Dict[str, Any]) -> str:
    rev = _f(fd, "revenueGrowth")
    earn = _f(fd, "earningsGrowth")
    if rev > earn:
        return "Revenue growing faster than earnings indicates potential margin pressure"
    if earn > rev * 1.5:
        return "Earnings growing significantly faster than revenue indicates strong operational leverage"
    return "Balanced growth between revenue and earnings"


def growth_quality(fd: Dict[str, Any]) -> str:
    fast = VALUATION_THRESHOLDS["GROWTH_RATES"]["FAST"]
    if _f(fd, "revenueGrowth") > fast and _f(fd, "earningsGrowth") > fast:
        return "Strong"
    return "Moderate"


def capital_efficiency(fd: Dict[str, Any]) -> str:
    r = roic(fd)
    if r > 0.15:
        return "Excellent capital allocation efficiency"
    if r > 0.10:
        return "Good capital allocation efficiency"
    return "Moderate capital allocation efficiency"


def value_creation(fd: Dict[str, Any]) -> str:
    spread = eva_spread(fd)
    if spread > 0.10:
        return "Significant value creation above cost of capital"
    if spread > 0:
        return "Moderate value creation above cost of capital"
    return "Operating below cost of capital"


@dataclass
class MoatAssessment:
    score: int
    max_score: int = 10
    reasons: List[str] = field(default_factory=list)
    categories: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "reasons": list(self.reasons),
            "categories": dict(self.categories),
        }


def moat_score(fd: Dict[str, Any]) -> MoatAssessment:
    """Moat score built from four advantage categories (network, brand, switching, cost)."""
    factors = VALUATION_THRESHOLDS["MOAT_FACTORS"]
    revenue = _f(fd, "totalRevenue")
    opm = _f(fd, "operatingMargins")
    categories = {"networkEffects": 0, "brandValue": 0, "switchingCosts": 0, "costAdvantages": 0}
    reasons: List[str] = []

    if _f(fd, "revenueGrowth") > factors["NETWORK_EFFECTS"]["USER_GROWTH_RATE"]:
        categories["networkEffects"] += 2
        if revenue > factors["NETWORK_EFFECTS"]["PLATFORM_REVENUE"]:
            categories["networkEffects"] += 1
            reasons.append("Strong network effects with scale")

    if _f(fd, "grossMargins") > factors["BRAND_VALUE"]["GROSS_MARGIN"]:
        categories["brandValue"] += 2
        reasons.append("Premium brand pricing power")

    if opm > VALUATION_THRESHOLDS["MARGINS"]["HIGH"]:
        categories["switchingCosts"] += 2
        reasons.append("High customer switching costs")

    cost = factors["COST_ADVANTAGES"]
    if revenue > cost["SCALE_THRESHOLD"]:
        categories["costAdvantages"] += 2
        avg_opm = industry_metric(fd, "avgOperatingMargin") or 0.0
        if opm > avg_opm + cost["OPERATING_MARGIN_PREMIUM"]:
            categories["costAdvantages"] += 1
            reasons.append("Significant cost advantages from scale")

    return MoatAssessment(score=sum(categories.values()), reasons=reasons, categories=categories)


def quality_moat_score(fd: Dict[str, Any]) -> MoatAssessment:
    """Competitive quality score: pricing power, scale, efficiency and returns (0-10)."""
    score = 0
    reasons: List[str] = []
    gm = _f(fd, "grossMargins")
    revenue = _f(fd, "totalRevenue")
    opm = _f(fd, "operatingMargins")
    roe = _f(fd, "returnOnEquity")
    rev_growth = _f(fd, "revenueGrowth")
    avg_revenue = industry_avg_revenue(fd)
    avg_opm = industry_metric(fd, "avgOperatingMargin") or 0.0

    if gm > 0.50:
        score += 3
        reasons.append("Premium pricing power")
    elif gm > 0.35:
        score += 2
        reasons.append("Strong margins")

    if revenue > avg_revenue * 2:
        score += 3
        reasons.append("Market leadership")
    elif revenue > avg_revenue:
        score += 2
        reasons.append("Strong market position")

    if opm > avg_opm * 1.25:
        score += 2
        reasons.append("Superior efficiency")
    elif opm > avg_opm:
        score += 1
        reasons.append("Good efficiency")

    if roe > 0.20 and rev_growth > 0.15:
        score += 2
        reasons.append("Strong returns and growth")
    elif roe > 0.15 or rev_growth > 0.10:
        score += 1
        reasons.append("Good capital returns")

    return MoatAssessment(score=score, reasons=reasons)


def strategic_effectiveness(fd: Dict[str, Any]) -> float:
    score = 0.0
    opm_last = to_float(fd.get("operatingMargins_lastYear"))
    fcf_last = to_float(fd.get("freeCashflow_lastYear"))
    if opm_last is not None and _f(fd, "operatingMargins") > opm_last:
        score += 0.3
    if _f(fd, "revenueGrowth") > (industry_metric(fd, "avgRevenueGrowth") or 0.0):
        score += 0.4
    if fcf_last is not None and _f(fd, "freeCashflow") > fcf_last:
        score += 0.3
    return round(score, 2)


# Investment style

STYLE_NARRATIVES = {
    "Value": "Classic value characteristics with strong fundamentals. Suitable for Buffett-style investing.",
    "Growth": "High growth profile with premium valuation. Momentum-driven opportunity.",
    "GARP": "Growth at reasonable price with balanced metrics. Moderate risk-reward profile.",
    "Blend": "Balanced characteristics suitable for multiple strategies.",
}


def investment_style(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    fwd_pe = _f(ks, "forwardPE")
    if fwd_pe < 15 and _f(fd, "returnOnEquity") > 0.15:
        return "Value"
    if _f(fd, "revenueGrowth") > 0.15 and fwd_pe > 20:
        return "Growth"
    if _f(ks, "beta") > 1.2 and _f(fd, "operatingMargins") > 0.2:
        return "GARP"
    return "Blend"


def style_narrative(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    return STYLE_NARRATIVES[investment_style(fd, ks)]


def style_impact(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    fwd_pe = _f(ks, "forwardPE")
    if fwd_pe > 25 and _f(fd, "revenueGrowth") > 0.15:
        return "Growth Premium"
    if fwd_pe < 15 and _f(fd, "returnOnEquity") > 0.15:
        return "Value Opportunity"
    return "Balanced"


def market_position(ks: Dict[str, Any]) -> str:
    notes = []
    beta = _f(ks, "beta", 1.0)
    if _f(ks, "heldPercentInstitutions") > 0.7:
        notes.append("Strong institutional backing")
    if beta < 0.8:
        notes.append("Defensive characteristics")
    if beta > 1.2:
        notes.append("High market sensitivity")
    return ". ".join(notes) or "Moderate market positioning"


def beta_profile(beta: float) -> str:
    if beta < 0.8:
        return "Defensive"
    if beta > 1.2:
        return "Aggressive"
    return "Moderate"


def beta_impact(beta: float) -> str:
    if beta > 1.5:
        return "High Volatility"
    if beta < 0.8:
        return "Defensive"
    return "Moderate"


# Macro helpers

def cycle_score(ks: Dict[str, Any]) -> int:
    score = 0
    trailing = to_float(ks.get("trailingPE"))
    if trailing is not None and _f(ks, "forwardPE") < trailing:
        score += 2
    if _f(ks, "beta", 1.0) < 1:
        score += 2
    if _f(ks, "52WeekChange") > 0:
        score += 2
    if _f(ks, "heldPercentInstitutions") > 0.7:
        score += 2
    return score


def cycle_phase(score: int) -> str:
    if score >= 6:
        return "mid"
    if score >= 4:
        return "early"
    return "late"


def debt_to_assets(fd: Dict[str, Any]) -> float:
    assets = _f(fd, "totalAssets")
    if not assets:
        return 0.0
    return _f(fd, "totalDebt") / assets


def rate_impact(fd: Dict[str, Any]) -> str:
    return "High Impact" if debt_to_assets(fd) > 0.5 else "Moderate Impact"


def performance_impact(ks: Dict[str, Any]) -> str:
    gap = _f(ks, "52WeekChange") - _f(ks, "SandP52WeekChange")
    if gap > 0.2:
        return "Strong Outperformance"
    if gap < -0.2:
        return "Significant Underperformance"
    return "Market Aligned"


def valuation_impact(fd: Dict[str, Any], ks: Dict[str, Any]) -> str:
    industry_pe = industry_metric(fd, "avgPERatio")
    if not industry_pe:
        return "Fair Valued"
    premium = (_f(ks, "forwardPE") - industry_pe) / industry_pe
    if premium > 0.3:
        return "Premium Valuation"
    if premium < -0.3:
        return "Value Territory"
    return "Fair Valued"


def gdp_beta(fd: Dict[str, Any]) -> float:
    return _f(fd, "revenueGrowth") / BASE_GDP_GROWTH


def gdp_impact(fd: Dict[str, Any]) -> str:
    beta = gdp_beta(fd)
    if beta > 2:
        return "High Growth Premium"
    if beta < 1:
        return "Defensive Growth"
    return "Market Growth"


def price_transmission(fd: Dict[str, Any]) -> float:
    gm = _f(fd, "grossMargins")
    if gm > 0.4:
        return 0.8
    if gm > 0.3:
        return 0.6
    return 0.4


def pricing_impact(fd: Dict[str, Any]) -> str:
    t = price_transmission(fd)
    if t > 0.7:
        return "Strong Pricing Power"
    if t < 0.5:
        return "Price Taker"
    return "Moderate Pricing Power"


def fx_exposure(fd: Dict[str, Any]) -> float:
    return 0.5 if _f(fd, "totalRevenue") > 10e9 else 0.3


def fx_impact(fd: Dict[str, Any]) -> str:
    exposure = fx_exposure(fd)
    if exposure > 0.5:
        return "High FX Exposure"
    if exposure < 0.3:
        return "Low FX Exposure"
    return "Moderate FX Exposure"


def options_impact(ks: Dict[str, Any]) -> str:
    pcr = _f(ks, "putCallRatio", 1.0)
    if pcr > 1.5:
        return "Bearish"
    if pcr < 0.7:
        return "Bullish"
    return "Neutral"
