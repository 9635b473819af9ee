import numpy as np
import pytest

from marketlens.signals.patterns import (
    Swing,
    detect_chart_patterns,
    find_intersection,
    find_swings,
    is_valid_trend_line,
    linear_regression,
    percent_difference,
    within_tolerance,
)


def _records(knots, length):
    xs, ys = zip(*knots)
    values = np.interp(range(length), xs, ys)
    return [{"date": f"2024-01-{i + 1:02d}", "value": float(v)} for i, v in enumerate(values)]


def test_linear_regression():
    pts = [Swing(0, 1.0, "low"), Swing(1, 3.0, "low"), Swing(2, 5.0, "low")]
    line = linear_regression(pts)
    assert line["slope"] == pytest.approx(2.0)
    assert line["intercept"] == pytest.approx(1.0)
    # vertical points: zero slope through the mean
    assert linear_regression([Swing(1, 2.0, "low"), Swing(1, 4.0, "low")]) == {"slope": 0.0, "intercept": 3.0}


def test_trend_line_validation():
    rising = [Swing(i, 10.0 + i, "low") for i in range(4)]
    assert is_valid_trend_line(rising, "support")
    assert not is_valid_trend_line(rising, "resistance")
    assert not is_valid_trend_line(rising[:2], "support")


def test_percent_difference():
    assert percent_difference(110, 90) == pytest.approx(20.0)
    assert percent_difference(0, 0) == 0.0
    assert within_tolerance(100, 104)
    assert not within_tolerance(100, 110)


def test_find_swings():
    records = _records([(0, 100), (5, 110), (10, 100), (15, 110.5), (20, 95), (24, 99)], 25)
    swings = find_swings(records)
    assert [(s.index, s.kind) for s in swings] == [(5, "high"), (10, "low"), (15, "high"), (20, "low")]
    assert swings[0].to_dict()["type"] == "high"
    assert swings[0].date == "2024-01-06"
    assert find_swings(records[:4]) == []


def test_short_history_has_no_patterns():
    assert detect_chart_patterns([{"value": float(i)} for i in range(19)]) == []
    assert detect_chart_patterns(None) == []


def test_double_top():
    records = _records([(0, 100), (5, 110), (10, 100), (15, 110.5), (20, 95), (24, 99)], 25)
    patterns = detect_chart_patterns(records)
    assert len(patterns) == 1
    p = patterns[0]
    assert p["type"] == "double_top"
    assert p["direction"] == "bearish"
    assert p["completionStatus"] == "Confirmed Breakdown"
    assert p["completion"] == 100
    assert p["target"] == pytest.approx(89.75)
    assert p["points"]["firstPeak"]["index"] == 5
    assert p["lines"]["neckline"] == {"slope": 0.0, "intercept": 100.0}


def test_head_and_shoulders_ranks_first():
    records = _records(
        [(0, 100), (4, 110), (8, 102), (12, 118), (16, 102.5), (20, 110.5), (26, 96)], 27
    )
    patterns = detect_chart_patterns(records)
    hs = patterns[0]
    assert hs["type"] == "head_and_shoulders"
    assert hs["points"]["head"]["value"] == pytest.approx(118)
    assert hs["lines"]["neckline"]["slope"] == pytest.approx(0.0625)
    assert hs["target"] == pytest.approx(87.0)
    assert hs["completion"] == 100
    # troughs at 102 and 102.5 also form a still-developing double bottom
    assert [p["type"] for p in patterns[1:]] == ["double_bottom"]
    assert patterns[1]["completionStatus"] == "Developing"


def test_at_most_five_patterns():
    knots = [(0, 100)]
    for k in range(1, 16):
        knots.append((k * 4, 110 if k % 2 else 100))
    patterns = detect_chart_patterns(_records(knots, 61))
    assert 0 < len(patterns) <= 5
    completions = [p["completion"] for p in patterns]
    assert completions == sorted(completions, reverse=True)


def test_find_intersection():
    cross = find_intersection({"slope": 1.0, "intercept": 0.0}, {"slope": -1.0, "intercept": 10.0})
    assert cross == {"index": 5.0, "value": 5.0}
    assert find_intersection({"slope": 0.5, "intercept": 1.0}, {"slope": 0.5, "intercept": 3.0}) is None


def test_ascending_triangle():
    # near-flat highs around 110 over lows rising 90 -> 105
    records = _records(
        [(0, 102), (3, 110.15), (6, 90), (9, 110.10), (12, 95), (15, 110.05),
         (18, 100), (21, 110.0), (24, 105), (26, 108)],
        27,
    )
    patterns = detect_chart_patterns(records)
    assert [p["type"] for p in patterns] == [
        "double_top", "double_top", "ascending_triangle", "bearish_pennant"]
    tri = patterns[2]
    assert tri["name"] == "Ascending Triangle"
    assert tri["direction"] == "bullish"
    assert tri["completionStatus"] == "Developing"
    assert tri["completion"] == 85  # 23 of 27 bars from the first swing to the apex
    assert tri["points"]["apex"]["index"] == 30
    assert tri["lines"]["resistance"]["slope"] == pytest.approx(-0.05 / 6)
    assert tri["lines"]["support"]["slope"] == pytest.approx(5 / 6)
    assert tri["patternHeight"] == pytest.approx(22.65)
    assert tri["target"] == pytest.approx(132.608333, rel=1e-6)
    assert tri["downTarget"] == pytest.approx(84.016667, rel=1e-6)


def test_bullish_rectangle():
    # rally into a 100-110 range
    records = _records(
        [(0, 90), (10, 110), (14, 100), (18, 110), (22, 100), (26, 110), (30, 100), (34, 105)], 35
    )
    patterns = detect_chart_patterns(records)
    assert [p["type"] for p in patterns] == ["bullish_rectangle", "double_top", "double_bottom"]
    rect = patterns[0]
    assert rect["completion"] == 100
    assert rect["completionStatus"] == "Consolidating"
    assert rect["target"] is None
    assert rect["upTarget"] == pytest.approx(120.0)
    assert rect["downTarget"] == pytest.approx(90.0)
    assert rect["lines"]["resistance"] == {"slope": 0.0, "intercept": 110.0}
    assert len(rect["points"]["highs"]) == 3


def test_falling_wedge_and_pennant():
    # highs fall 124 -> 106, lows only 100 -> 97
    records = _records(
        [(0, 110), (3, 124), (6, 100), (9, 118), (12, 99), (15, 112),
         (18, 98), (21, 106), (24, 97), (26, 100)],
        27,
    )
    patterns = detect_chart_patterns(records)
    assert [p["type"] for p in patterns] == [
        "double_bottom", "double_bottom", "falling_wedge", "bearish_pennant", "falling_wedge"]
    assert [p["completion"] for p in patterns] == [95, 85, 82, 73, 68]

    wedge = patterns[2]
    assert wedge["direction"] == "bullish"
    assert wedge["points"]["apex"]["index"] == pytest.approx(31.2)
    assert wedge["patternHeight"] == pytest.approx(23.5)
    assert wedge["target"] == pytest.approx(124.5)

    pennant = patterns[3]
    assert pennant["points"]["mastStart"]["index"] == 2
    assert pennant["points"]["mastEnd"]["value"] == pytest.approx(99.0)
    assert pennant["mastHeight"] == pytest.approx(61 / 3)
    assert pennant["target"] == pytest.approx(99.0 - 61 / 3)
    assert pennant["completionStatus"] == "Developing"
