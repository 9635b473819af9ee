import numpy as np
import pandas as pd
import pytest

from marketlens.signals import indicators as ind
from marketlens.signals.indicators import TechnicalAnalyzer


def _bars(closes, spread=1.0, volume=1000.0):
    return [{"value": c, "close": c, "high": c + spread, "low": c - spread, "volume": volume} for c in closes]


def test_sma_and_ema():
    assert ind.sma([1, 2, 3, 4], 2) == 3.5
    assert ind.sma([1], 2) is None
    assert list(ind.ema_series([1, 2, 3, 4, 5], 3)) == [2.0, 3.0, 4.0]
    assert ind.ema([1, 2, 3, 4, 5], 3) == 4.0
    assert ind.ema([1, 2], 3) is None


def test_closes_accepts_records_and_frames():
    assert list(ind.closes([{"value": 1}, {"close": 2}, {"price": 3}])) == [1.0, 2.0, 3.0]
    assert list(ind.closes(pd.DataFrame({"close": [4, 5]}))) == [4.0, 5.0]


def test_rsi():
    assert ind.rsi(list(range(1, 21))) == 100.0  # no losses
    assert ind.rsi(list(range(10))) is None
    # equal gains and losses
    assert ind.rsi([10, 11] * 8) == pytest.approx(50.0)
    assert ind.wilder_rsi(list(range(1, 21))) == 100.0


def test_bollinger_flat_series():
    bands = ind.bollinger([5.0] * 20)
    assert bands == {"upper": 5.0, "middle": 5.0, "lower": 5.0}
    assert ind.bollinger([5.0] * 19) is None


def test_atr_and_obv():
    assert ind.atr(_bars([100.0] * 15)) == pytest.approx(2.0)
    # fourteen bars give thirteen true ranges, which are averaged
    assert ind.atr(_bars([100.0] * 14)) == pytest.approx(2.0)
    assert ind.atr(_bars([100.0] * 13)) is None
    records = [{"close": 1, "volume": 10}, {"close": 2, "volume": 20}, {"close": 1, "volume": 30}]
    assert ind.obv(records) == -10.0
    assert ind.obv(records[:1]) is None


def test_trend_indicators():
    assert ind.wma([1, 2, 3], 3) == pytest.approx(14 / 6)
    assert ind.dema(list(range(27)), 14) is None
    assert ind.dema(list(range(28)), 14) == pytest.approx(27.0)  # exact on a straight line
    assert ind.tema(list(range(41)), 14) is None
    assert ind.hma(list(range(1, 40)), 14) is not None
    assert ind.vwap([1.0, 2.0, 3.0]) is None  # no volume
    assert ind.vwap(_bars([10.0, 20.0])) == pytest.approx(15.0)
    assert ind.psar(_bars([1.0, 2.0])) is None


def test_momentum_indicators():
    assert ind.macd_full(list(range(34))) is None
    full = ind.macd_full([100 + i for i in range(60)])
    assert set(full) == {"macd", "signal", "histogram"}
    assert full["histogram"] == pytest.approx(full["macd"] - full["signal"])
    assert ind.roc([100.0] * 12 + [110.0]) == pytest.approx(10.0)
    assert ind.williams_r([5.0] * 14) is None  # high equals low
    stoch = ind.stochastic(_bars([float(i) for i in range(1, 30)]))
    assert 0 <= stoch["d"] <= 100
    assert ind.cci(_bars([5.0] * 20)) == 0.0


def test_volatility_and_volume():
    assert ind.annualized_volatility([100.0] * 29) is None
    assert ind.annualized_volatility([100.0] * 30) == 0.0
    kelt = ind.keltner(_bars([100.0] * 25))
    assert kelt["middle"] == pytest.approx(100.0)
    assert kelt["upper"] == pytest.approx(104.0)
    assert ind.volume_roc(_bars([1.0] * 13)) == 0.0
    assert ind.chaikin_oscillator(_bars([1.0] * 9)) is None


def test_empty_snapshot():
    snap = ind.calculate_technical_indicators([])
    assert snap == ind.empty_snapshot()
    assert set(snap) == {"movingAverages", "momentum", "volatility", "volume"}
    assert all(v is None for group in snap.values() for v in group.values())


def test_snapshot_rounds_and_fills(trending_history):
    snap = ind.calculate_technical_indicators(trending_history)
    assert snap["movingAverages"]["sma200"] is not None
    assert snap["momentum"]["macdSignal"] is not None
    assert snap["volatility"]["atr"] > 0
    sma50 = snap["movingAverages"]["sma50"]
    assert sma50 == round(sma50, 2)


def test_short_history_leaves_gaps():
    snap = ind.calculate_technical_indicators(_bars([float(i) for i in range(1, 31)]))
    assert snap["movingAverages"]["sma50"] is None
    assert snap["momentum"]["rsi"] == 100.0
    assert snap["momentum"]["macdSignal"] is None


def test_compute_indicators_columns():
    dates = pd.date_range(start="2023-01-01", periods=250, freq="D")
    np.random.seed(42)
    prices = 100 + np.cumsum(np.random.randn(250) * 0.5)
    df = pd.DataFrame({
        "open": prices,
        "high": prices + 1,
        "low": prices - 1,
        "close": prices,
        "volume": np.random.randint(1_000_000, 10_000_000, 250),
    }, index=dates)
    result = TechnicalAnalyzer.compute_indicators(df)
    for col in ("ma20", "ma50", "ma200", "ema20", "rsi", "MACD", "MACD_signal",
                "MACD_histogram", "bb_upper", "bb_lower", "atr", "vol_avg_20", "obv"):
        assert col in result.columns
    assert not pd.isna(result["ma200"].iloc[-1])
    assert (result["bb_upper"].dropna() >= result["bb_lower"].dropna()).all()


def test_pivot_levels():
    assert TechnicalAnalyzer.pivot_levels(pd.Series(range(100))) == (50.0, 99.0)
    assert TechnicalAnalyzer.pivot_levels(pd.Series(range(10))) == (0.0, 9.0)
