from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from marketlens.signals.indicators import price_series

MIN_POINTS = 20
MAX_PATTERNS = 5

PATTERN_IMPORTANCE = {
    "head_and_shoulders": 10,
    "inverse_head_and_shoulders": 10,
    "double_top": 9,
    "double_bottom": 9,
    "ascending_triangle": 8,
    "descending_triangle": 8,
    "bullish_pennant": 8,
    "bearish_pennant": 8,
    "symmetrical_triangle": 7,
    "rising_wedge": 7,
    "falling_wedge": 7,
    "bullish_rectangle": 6,
    "bearish_rectangle": 6,
    "rectangle": 6,
}

BEARISH_COLOR = "#ef4444"
BULLISH_COLOR = "#22c55e"
NEUTRAL_COLOR = "#a78bfa"

# swings considered per triangle, rectangle or wedge window
WINDOW = 10


@dataclass
class Swing:
    index: int
    value: float
    kind: str
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "date": self.date, "value": self.value, "type": self.kind}


def linear_regression(points: List[Swing]) -> Dict[str, float]:
    """Least-squares line through (index, value) points."""
    n = len(points)
    if n < 2:
        return {"slope": 0.0, "intercept": 0.0}
    sx = sum(p.index for p in points)
    sy = sum(p.value for p in points)
    sxy = sum(p.index * p.value for p in points)
    sxx = sum(p.index * p.index for p in points)
    den = n * sxx - sx * sx
    if den == 0:
        return {"slope": 0.0, "intercept": sy / n}
    slope = (n * sxy - sx * sy) / den
    return {"slope": slope, "intercept": (sy - slope * sx) / n}


def r_squared(points: List[Swing], line: Dict[str, float]) -> float:
    if len(points) < 2:
        return 0.0
    mean = sum(p.value for p in points) / len(points)
    ss_total = sum((p.value - mean) ** 2 for p in points)
    if ss_total == 0:
        return 0.0
    ss_res = sum((p.value - line_value(line, p.index)) ** 2 for p in points)
    return 1 - ss_res / ss_total


def is_valid_trend_line(points: List[Swing], kind: str) -> bool:
    """At least three points, R² above 0.7 and a slope pointing the right way."""
    if len(points) < 3:
        return False
    line = linear_regression(points)
    if r_squared(points, line) <= 0.7:
        return False
    if kind == "support":
        return line["slope"] > -0.05
    return line["slope"] < 0.05


def line_value(line: Dict[str, float], index: float) -> float:
    return line["slope"] * index + line["intercept"]


def find_intersection(a: Dict[str, float], b: Dict[str, float]) -> Optional[Dict[str, float]]:
    """Crossing point of two lines, None when they are (nearly) parallel."""
    if abs(a["slope"] - b["slope"]) < 0.0001:
        return None
    x = (b["intercept"] - a["intercept"]) / (a["slope"] - b["slope"])
    y = line_value(a, x)
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return {"index": x, "value": y}


def percent_difference(a: float, b: float) -> float:
    mid = (a + b) / 2
    if mid == 0:
        return 0.0 if a == b else float("inf")
    return abs((a - b) / mid) * 100


def within_tolerance(value: float, target: float, tolerance: float = 5) -> bool:
    return percent_difference(value, target) <= tolerance


def find_swings(records: List[Dict[str, Any]], timeframe: Optional[str] = None) -> List[Swing]:
    """Strict local highs and lows; the short timeframe compares one bar each side, others two."""
    prices = price_series(records)
    if len(prices) < 5:
        return []
    window = 1 if timeframe == "short" else 2
    swings: List[Swing] = []
    for i in range(window, len(prices) - window):
        neighbours = [prices[i - j] for j in range(1, window + 1)] + [
            prices[i + j] for j in range(1, window + 1)
        ]
        date = records[i].get("date") if isinstance(records[i], dict) else None
        if all(prices[i] > n for n in neighbours):
            swings.append(Swing(i, prices[i], "high", date))
        elif all(prices[i] < n for n in neighbours):
            swings.append(Swing(i, prices[i], "low", date))
    return swings


def _status(completed: bool, broke: bool, move: str):
    if completed and broke:
        return f"Confirmed {move}", 100
    if completed:
        return f"Awaiting {move}", 95
    return "Developing", 85


def _pattern(kind, name, description, points, neckline, target, status, direction, height):
    completion_status, completion = status
    return {
        "type": kind,
        "name": name,
        "description": description,
        "points": {k: v.to_dict() for k, v in points.items()},
        "lines": {"neckline": neckline},
        "target": target,
        "completionStatus": completion_status,
        "completion": completion,
        "direction": direction,
        "color": BEARISH_COLOR if direction == "bearish" else BULLISH_COLOR,
        "patternHeight": height,
    }


def _three_extremes(swings: List[Swing], start: int, outer: str, inverse: bool):
    """Collect three outer swings (shoulder, head, shoulder) and two inner swings from start."""
    outers: List[int] = []
    inners: List[int] = []
    beyond = (lambda a, b: a < b) if inverse else (lambda a, b: a > b)
    j = start
    while j < len(swings) and (len(outers) < 3 or len(inners) < 2):
        sw = swings[j]
        if sw.kind == outer and (
            not outers
            or (len(outers) == 1 and beyond(sw.value, swings[outers[0]].value))
            or (
                len(outers) == 2
                and beyond(swings[outers[1]].value, sw.value)
                and within_tolerance(sw.value, swings[outers[0]].value, 10)
            )
        ):
            outers.append(j)
        elif sw.kind != outer and len(outers) > len(inners):
            inners.append(j)
        j += 1
    return outers, inners


def _head_and_shoulders(records, swings: List[Swing], inverse: bool) -> List[Dict[str, Any]]:
    outer = "low" if inverse else "high"
    latest = price_series(records[-1:])[0]
    last_swing = swings[-1].index
    found = []
    i = 0
    while i < len(swings) - 4:
        outers, inners = _three_extremes(swings, i, outer, inverse)
        if len(outers) == 3 and len(inners) == 2:
            left, head, right = (swings[k] for k in outers)
            first, second = (swings[k] for k in inners)
            if inverse:
                head_ok = head.value < left.value and head.value < right.value
            else:
                head_ok = head.value > left.value and head.value > right.value
            if head_ok and within_tolerance(left.value, right.value, 10):
                neckline = linear_regression([first, second])
                base = (first.value + second.value) / 2
                height = base - head.value if inverse else head.value - base
                at_right = line_value(neckline, right.index)
                target = at_right + height if inverse else at_right - height
                completed = max(s.index for s in (left, head, right, first, second)) == last_swing
                neck_now = line_value(neckline, len(records) - 1)
                broke = latest > neck_now if inverse else latest < neck_now
                if inverse:
                    found.append(_pattern(
                        "inverse_head_and_shoulders",
                        "Inverse Head and Shoulders",
                        "Bullish reversal: three troughs with the lowest in the middle and "
                        "two shoulders at a similar level.",
                        {"leftShoulder": left, "head": head, "rightShoulder": right,
                         "leftPeak": first, "rightPeak": second},
                        neckline, target, _status(completed, broke, "Breakout"), "bullish", height,
                    ))
                else:
                    found.append(_pattern(
                        "head_and_shoulders",
                        "Head and Shoulders",
                        "Bearish reversal: three peaks with the highest in the middle and "
                        "two shoulders at a similar level.",
                        {"leftShoulder": left, "head": head, "rightShoulder": right,
                         "leftTrough": first, "rightTrough": second},
                        neckline, target, _status(completed, broke, "Breakdown"), "bearish", height,
                    ))
                i = min(outers[2], inners[1])
        i += 1
    return found


def _double_patterns(records, swings: List[Swing], top: bool) -> List[Dict[str, Any]]:
    if len(swings) < 4:
        return []
    outer, inner = ("high", "low") if top else ("low", "high")
    latest = price_series(records[-1:])[0]
    last_swing = swings[-1].index
    found = []
    i = 0
    while i < len(swings) - 2:
        a, mid, b = swings[i], swings[i + 1], swings[i + 2]
        if a.kind == outer and b.kind == outer and mid.kind == inner and within_tolerance(a.value, b.value, 3):
            pair = (a.value + b.value) / 2
            if top:
                height = pair - mid.value
                target = mid.value - height
                follow = len(swings) > i + 3 and swings[i + 3].value < mid.value
                broke = latest < mid.value
            else:
                height = mid.value - pair
                target = mid.value + height
                follow = len(swings) > i + 3 and swings[i + 3].value > mid.value
                broke = latest > mid.value
            completed = b.index == last_swing or follow
            neckline = {"slope": 0.0, "intercept": mid.value}
            if top:
                found.append(_pattern(
                    "double_top", "Double Top",
                    "Bearish reversal: two peaks at roughly the same level with a trough between them.",
                    {"firstPeak": a, "trough": mid, "secondPeak": b},
                    neckline, target, _status(completed, broke, "Breakdown"), "bearish", height,
                ))
            else:
                found.append(_pattern(
                    "double_bottom", "Double Bottom",
                    "Bullish reversal: two troughs at roughly the same level with a peak between them.",
                    {"firstTrough": a, "peak": mid, "secondTrough": b},
                    neckline, target, _status(completed, broke, "Breakout"), "bullish", height,
                ))
            i += 2
        i += 1
    return found


def _percent(progress: float) -> int:
    return int(math.floor(progress * 100 + 0.5))


def _title(kind: str) -> str:
    return " ".join(word.capitalize() for word in kind.split("_"))


def _window(swings: List[Swing], start: int):
    window = swings[start:start + WINDOW]
    highs = [s for s in window if s.kind == "high"]
    lows = [s for s in window if s.kind == "low"]
    return window, highs, lows


def _point(records, prices: List[float], index: int) -> Dict[str, Any]:
    date = records[index].get("date") if isinstance(records[index], dict) else None
    return {"index": index, "date": date, "value": prices[index]}


def _shape(kind, description, points, lines, target, status, completion, direction, color, height, **extra):
    pattern = {
        "type": kind,
        "name": _title(kind),
        "description": description,
        "points": points,
        "lines": lines,
        "target": target,
        "completionStatus": status,
        "completion": completion,
        "direction": direction,
        "color": color,
        "patternHeight": height,
    }
    pattern.update(extra)
    return pattern


TRIANGLES = {
    "symmetrical_triangle": (
        "bilateral", NEUTRAL_COLOR,
        "Converging trend lines mark a consolidation that can break out in either direction.",
    ),
    "ascending_triangle": (
        "bullish", BULLISH_COLOR,
        "Flat resistance over rising support suggests accumulation and an upside breakout.",
    ),
    "descending_triangle": (
        "bearish", BEARISH_COLOR,
        "Flat support under falling resistance suggests distribution and a downside breakdown.",
    ),
}

WEDGES = {
    "rising_wedge": (
        "bearish", BEARISH_COLOR,
        "Rising, converging trend lines; despite the upward slope the pattern often resolves lower.",
    ),
    "falling_wedge": (
        "bullish", BULLISH_COLOR,
        "Falling, converging trend lines; despite the downward slope the pattern often resolves higher.",
    ),
}


def _triangle_kind(resistance: float, support: float) -> Optional[str]:
    if abs(resistance - support) < 0.01:
        return None
    if resistance < -0.01 and support > 0.01:
        return "symmetrical_triangle"
    if resistance < -0.01 and abs(support) < 0.01:
        return "descending_triangle"
    if abs(resistance) < 0.01 and support > 0.01:
        return "ascending_triangle"
    return None


def _triangle_at(prices: List[float], swings: List[Swing], start: int) -> Optional[Dict[str, Any]]:
    window, highs, lows = _window(swings, start)
    if len(highs) < 2 or len(lows) < 2:
        return None
    resistance, support = linear_regression(highs), linear_regression(lows)
    if r_squared(highs, resistance) < 0.6 or r_squared(lows, support) < 0.6:
        return None
    cross = find_intersection(resistance, support)
    # apex more than half the history beyond the last bar
    if cross is None or cross["index"] > len(prices) * 1.5:
        return None
    kind = _triangle_kind(resistance["slope"], support["slope"])
    if kind is None:
        return None
    direction, color, description = TRIANGLES[kind]

    first = window[0]
    apex = {"index": int(math.floor(cross["index"] + 0.5)), "value": cross["value"]}
    if apex["index"] == first.index:
        return None
    last = len(prices) - 1
    progress = (last - first.index) / (apex["index"] - first.index)
    if progress < 0.3 or progress > 0.9:
        return None

    height = abs(line_value(resistance, first.index) - line_value(support, first.index))
    upper, lower = line_value(resistance, last), line_value(support, last)
    up_target, down_target = upper + height, lower - height
    target = {"bullish": up_target, "bearish": down_target}.get(direction)
    status, completion = "Developing", _percent(progress)
    price = prices[-1]
    if price > upper * 1.005:
        status, completion, target = "Confirmed Bullish Breakout", 100, up_target
    elif price < lower * 0.995:
        status, completion, target = "Confirmed Bearish Breakdown", 100, down_target

    return _shape(
        kind, description,
        {"highs": [h.to_dict() for h in highs], "lows": [s.to_dict() for s in lows], "apex": apex},
        {"resistance": resistance, "support": support},
        target, status, completion, direction, color, height,
        upTarget=up_target, downTarget=down_target,
    )


def _rectangle_at(prices: List[float], swings: List[Swing], start: int) -> Optional[Dict[str, Any]]:
    window, highs, lows = _window(swings, start)
    if len(highs) < 2 or len(lows) < 2:
        return None
    high_values = np.array([h.value for h in highs])
    low_values = np.array([s.value for s in lows])
    avg_high, avg_low = float(high_values.mean()), float(low_values.mean())
    if avg_high <= 0 or avg_low <= 0:
        return None
    # both boundaries flat within 2% variation
    if high_values.std() / avg_high > 0.02 or low_values.std() / avg_low > 0.02:
        return None
    height = avg_high - avg_low
    if height / avg_low < 0.02 or window[-1].index - window[0].index < 5:
        return None

    prior = prices[max(0, window[0].index - 10):window[0].index]
    direction = "neutral"
    if len(prior) >= 2:
        direction = "bullish" if prior[0] < prior[-1] else "bearish"

    completion = min(100, _percent(len(window) / 4))
    status, target = "Developing", None
    if completion >= 100:
        price = prices[-1]
        if price > avg_high * 1.01:
            status, target = "Bullish Breakout", avg_high + height
        elif price < avg_low * 0.99:
            status, target = "Bearish Breakdown", avg_low - height
        else:
            status = "Consolidating"

    if direction == "neutral":
        kind, color = "rectangle", NEUTRAL_COLOR
        description = "Price consolidates between parallel support and resistance; the breakout direction is open."
    else:
        kind = f"{direction}_rectangle"
        color = BULLISH_COLOR if direction == "bullish" else BEARISH_COLOR
        description = (
            f"A {direction} continuation pattern: price consolidates between parallel support and "
            f"resistance before continuing {'upward' if direction == 'bullish' else 'downward'}."
        )
    return _shape(
        kind, description,
        {"highs": [h.to_dict() for h in highs], "lows": [s.to_dict() for s in lows]},
        {"resistance": {"slope": 0.0, "intercept": avg_high}, "support": {"slope": 0.0, "intercept": avg_low}},
        target, status, completion, direction, color, height,
        upTarget=avg_high + height, downTarget=avg_low - height,
    )


def _wedge_at(prices: List[float], swings: List[Swing], start: int) -> Optional[Dict[str, Any]]:
    window, highs, lows = _window(swings, start)
    if len(highs) < 2 or len(lows) < 2:
        return None
    upper_line, lower_line = linear_regression(highs), linear_regression(lows)
    if r_squared(highs, upper_line) < 0.6 or r_squared(lows, lower_line) < 0.6:
        return None
    hs, ls = upper_line["slope"], lower_line["slope"]
    same_way = (hs > 0 and ls > 0) or (hs < 0 and ls < 0)
    if not same_way or abs(hs - ls) <= 0.001:
        return None
    kind = "rising_wedge" if hs > 0 else "falling_wedge"
    direction, color, description = WEDGES[kind]

    cross = find_intersection(upper_line, lower_line)
    first = window[0]
    if cross is None or cross["index"] == first.index:
        return None
    last = len(prices) - 1
    progress = (last - first.index) / (cross["index"] - first.index)
    if progress < 0.3 or progress > 0.9:
        return None

    height = line_value(upper_line, first.index) - line_value(lower_line, first.index)
    upper, lower = line_value(upper_line, last), line_value(lower_line, last)
    target = upper + height if direction == "bullish" else lower - height
    status, completion = "Developing", _percent(progress)
    price = prices[-1]
    if direction == "bullish" and price > upper * 1.01:
        status, completion = "Confirmed Bullish Breakout", 100
    elif direction == "bearish" and price < lower * 0.99:
        status, completion = "Confirmed Bearish Breakdown", 100

    return _shape(
        kind, description,
        {"highs": [h.to_dict() for h in highs], "lows": [s.to_dict() for s in lows], "apex": cross},
        {"resistance": upper_line, "support": lower_line},
        target, status, completion, direction, color, height,
    )


def _pennant_at(records, prices: List[float], swings: List[Swing], i: int) -> Optional[Dict[str, Any]]:
    """A ten-bar mast of at least 5% ending at i, then converging swings over the next ten bars."""
    start, end = prices[i - 10], prices[i]
    if not start:
        return None
    change = (end - start) / start * 100
    if abs(change) < 5:
        return None
    bullish = change > 0

    flag = [s for s in swings if i <= s.index < i + 10]
    highs = [s for s in flag if s.kind == "high"]
    lows = [s for s in flag if s.kind == "low"]
    if len(highs) < 2 or len(lows) < 2:
        return None
    upper_line, lower_line = linear_regression(highs), linear_regression(lows)
    hs, ls = upper_line["slope"], lower_line["slope"]
    if not ((hs < 0 and ls > 0) or abs(hs - ls) > 0.001):
        return None
    cross = find_intersection(upper_line, lower_line)
    if cross is None or cross["index"] == i:
        return None

    mast = abs(end - start)
    last = len(prices) - 1
    completion = min(100, _percent((last - i) / (cross["index"] - i)))
    upper, lower = line_value(upper_line, last), line_value(lower_line, last)
    status = "Developing"
    price = prices[-1]
    if bullish and price > upper * 1.01:
        status, completion = "Confirmed Bullish Breakout", 100
    elif not bullish and price < lower * 0.99:
        status, completion = "Confirmed Bearish Breakdown", 100

    direction = "bullish" if bullish else "bearish"
    return _shape(
        f"{direction}_pennant",
        f"A {direction} continuation pattern: a strong directional move (the mast) followed by "
        "a small converging consolidation before the trend resumes.",
        {
            "mastStart": _point(records, prices, i - 10),
            "mastEnd": _point(records, prices, i),
            "highs": [h.to_dict() for h in highs],
            "lows": [s.to_dict() for s in lows],
            "apex": cross,
        },
        {"resistance": upper_line, "support": lower_line},
        end + mast if bullish else end - mast,
        status, completion, direction,
        BULLISH_COLOR if bullish else BEARISH_COLOR,
        mast,
        mastHeight=mast,
    )


def _scan(prices: List[float], swings: List[Swing], detect, min_swings: int) -> List[Dict[str, Any]]:
    """Slide a swing window from the left; after a hit, skip the next three windows."""
    found = []
    i = 0
    while i < len(swings) - (min_swings - 1):
        pattern = detect(prices, swings, i)
        if pattern is not None:
            found.append(pattern)
            i += 3
        i += 1
    return found


def _pennants(records, prices: List[float], swings: List[Swing]) -> List[Dict[str, Any]]:
    if len(swings) < 4:
        return []
    found = []
    i = 10
    while i < len(prices) - 10:
        pattern = _pennant_at(records, prices, swings, i)
        if pattern is not None:
            found.append(pattern)
            i += 10
        i += 1
    return found


def detect_chart_patterns(
    records: Iterable[Dict[str, Any]], timeframe: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Detect classic chart patterns in a price history: head and shoulders
    (and inverse), double tops and bottoms, triangles, rectangles, wedges
    and pennants.

    Returns at most five patterns ordered by completion, then by pattern
    importance. Histories shorter than twenty points yield no patterns.
    """
    records = list(records or [])
    if len(records) < MIN_POINTS:
        return []
    swings = find_swings(records, timeframe)
    patterns: List[Dict[str, Any]] = []
    if len(swings) >= 5:
        patterns += _head_and_shoulders(records, swings, inverse=False)
        patterns += _head_and_shoulders(records, swings, inverse=True)
    patterns += _double_patterns(records, swings, top=True)
    patterns += _double_patterns(records, swings, top=False)
    prices = price_series(records)
    patterns += _scan(prices, swings, _triangle_at, 5)
    patterns += _scan(prices, swings, _rectangle_at, 4)
    patterns += _scan(prices, swings, _wedge_at, 4)
    patterns += _pennants(records, prices, swings)
    patterns.sort(key=lambda p: (-p["completion"], -PATTERN_IMPORTANCE.get(p["type"], 5)))
    return patterns[:MAX_PATTERNS]
