from marketlens.analysis.scoring import AnalysisScorer, Scorecard


def test_scorecard_label_and_ratio():
    card = Scorecard(3, 6, breakdown=["a (+1)", "b (+2)"])
    assert card.label() == "3/6"
    assert card.ratio == 0.5
    assert card.detail == "a (+1); b (+2)"
    assert Scorecard(0, 5).detail == "No scoring factors met"
    assert "flags" not in card.to_dict()


def test_sentiment_score(payload):
    card = AnalysisScorer.sentiment(payload["financialData"], payload["keyStats"])
    # consensus 1.9 (+3), 25% target upside (+3), 62% institutions (+2)
    assert card.score == 8
    assert card.label() == "8/10"


def test_technical_score():
    ks = {"52WeekChange": 0.25, "SandP52WeekChange": 0.1, "beta": 1.0, "heldPercentInstitutions": 0.75}
    assert AnalysisScorer.technical(ks).score == 10
    assert AnalysisScorer.technical({}).score == 2  # default beta of 1.0 is balanced


def test_momentum_options_volume():
    assert AnalysisScorer.momentum({"52WeekChange": 0.35, "SandP52WeekChange": 0.1}).score == 8
    assert AnalysisScorer.options({}).score == 2  # neutral put/call and manageable short interest
    ks = {"averageVolume": 130, "averageVolume10Day": 100, "floatShares": 2e9}
    assert AnalysisScorer.volume(ks).score == 5


def test_balance_sheet():
    assert AnalysisScorer.balance_sheet({}).score == 2  # no debt reported
    fd = {"debtToEquity": 40, "currentRatio": 2.5, "totalAssets": 100,
          "totalCurrentAssets": 50, "totalCurrentLiabilities": 20}
    assert AnalysisScorer.balance_sheet(fd).score == 5


def test_risk_metrics_flags(payload):
    card = AnalysisScorer.risk_metrics(payload["financialData"], payload["keyStats"])
    assert card.score == 2  # only the 22% net margin scores
    assert card.flags == ["High leverage ratio", "Poor liquidity position"]
    assert card.details == {"leverage": "High", "liquidity": "Poor", "marketRisk": "High"}


def test_risk_metrics_capped_and_low_beta():
    fd = {"debtToEquity": 10, "currentRatio": 3, "profitMargins": 0.3, "segmentConcentration": 0.6}
    card = AnalysisScorer.risk_metrics(fd, {"beta": 0.9})
    assert card.score == 6
    assert card.flags == ["Market volatility exposure", "High revenue concentration"]
    assert card.details["leverage"] == "Low"
