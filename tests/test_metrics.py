import pytest

from marketlens.analysis import metrics as m


def test_owner_earnings_and_roic():
    fd = {"netIncome": 100, "depreciation": 20, "capitalExpenditures": 30,
          "ebit": 30, "totalAssets": 300, "totalCurrentLiabilities": 100}
    assert m.owner_earnings(fd) == 90
    assert m.roic(fd) == pytest.approx(0.15)
    assert m.eva_spread(fd) == pytest.approx(0.07)
    assert m.roic({}) == 0.0
    assert m.capital_efficiency(fd) == "Good capital allocation efficiency"


def test_growth_score():
    fd = {"revenueGrowth": 0.2, "earningsGrowth": 0.2, "operatingMargins": 0.5, "grossMargins": 0.4}
    assert m.growth_score(fd) == 5
    assert m.growth_score({"revenueGrowth": 0.2}) == 2
    assert m.growth_score({}) == 0


def test_growth_trend():
    assert "margin pressure" in m.growth_trend({"revenueGrowth": 0.2, "earningsGrowth": 0.1})
    assert "operational leverage" in m.growth_trend({"revenueGrowth": 0.1, "earningsGrowth": 0.3})
    assert m.growth_trend({"revenueGrowth": 0.1, "earningsGrowth": 0.12}).startswith("Balanced")


def test_moat_score_categories():
    fd = {"revenueGrowth": 0.25, "totalRevenue": 60e9, "grossMargins": 0.7, "operatingMargins": 0.35}
    moat = m.moat_score(fd)
    # tech: 3 network, 2 brand, 2 switching, 3 cost
    assert moat.categories == {"networkEffects": 3, "brandValue": 2, "switchingCosts": 2, "costAdvantages": 3}
    assert moat.score == 10
    assert moat.to_dict()["maxScore"] == 10
    assert m.moat_score({}).score == 0


def test_quality_moat_score():
    fd = {"grossMargins": 0.7, "totalRevenue": 120e9, "operatingMargins": 0.40,
          "returnOnEquity": 0.3, "revenueGrowth": 0.2}
    assert m.quality_moat_score(fd).score == 10
    assert m.quality_moat_score({}).score == 0


def test_investment_style():
    assert m.investment_style({"returnOnEquity": 0.2}, {"forwardPE": 12}) == "Value"
    assert m.investment_style({"revenueGrowth": 0.3}, {"forwardPE": 40}) == "Growth"
    assert m.investment_style({"operatingMargins": 0.3}, {"forwardPE": 18, "beta": 1.5}) == "GARP"
    assert m.investment_style({}, {"forwardPE": 18}) == "Blend"
    assert m.style_narrative({}, {"forwardPE": 18}).startswith("Balanced")


def test_cycle_score_and_phase():
    ks = {"forwardPE": 20, "trailingPE": 25, "beta": 0.9, "52WeekChange": 0.1, "heldPercentInstitutions": 0.8}
    assert m.cycle_score(ks) == 8
    assert m.cycle_score({}) == 0  # beta defaults to 1.0
    assert m.cycle_phase(8) == "mid"
    assert m.cycle_phase(4) == "early"
    assert m.cycle_phase(2) == "late"


def test_macro_sensitivities():
    assert m.gdp_beta({"revenueGrowth": 0.05}) == pytest.approx(2.0)
    assert m.gdp_impact({"revenueGrowth": 0.1}) == "High Growth Premium"
    assert m.price_transmission({"grossMargins": 0.5}) == 0.8
    assert m.price_transmission({"grossMargins": 0.35}) == 0.6
    assert m.pricing_impact({"grossMargins": 0.1}) == "Price Taker"
    assert m.fx_exposure({"totalRevenue": 20e9}) == 0.5
    assert m.fx_impact({"totalRevenue": 1e9}) == "Moderate FX Exposure"
    assert m.rate_impact({"totalDebt": 60, "totalAssets": 100}) == "High Impact"
    assert m.options_impact({"putCallRatio": 0.5}) == "Bullish"
    assert m.options_impact({}) == "Neutral"


def test_strategic_effectiveness():
    fd = {"operatingMargins": 0.3, "operatingMargins_lastYear": 0.25,
          "revenueGrowth": 0.2, "freeCashflow": 10, "freeCashflow_lastYear": 8}
    assert m.strategic_effectiveness(fd) == 1.0
    assert m.strategic_effectiveness({}) == 0.0


def test_detailed_roic():
    fd = {"ebit": 100, "totalCurrentAssets": 200, "totalCurrentLiabilities": 100, "totalAssets": 600}
    # NOPAT 79 over working capital 100 plus fixed assets 400
    assert m.detailed_roic(fd) == pytest.approx(79 / 500)
    assert m.detailed_roic({}) == 0.0
