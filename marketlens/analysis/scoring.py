from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from marketlens.core.formatting import to_float


@dataclass
class Scorecard:
    score: float
    max_score: float
    breakdown: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    details: Dict[str, str] = field(default_factory=dict)

    @property
    def ratio(self) -> float:
        return self.score / self.max_score if self.max_score else 0.0

    @property
    def detail(self) -> str:
        return "; ".join(self.breakdown) if self.breakdown else "No scoring factors met"

    def label(self) -> str:
        return f"{self.score:g}/{self.max_score:g}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "score": self.score,
            "maxScore": self.max_score,
            "breakdown": list(self.breakdown),
        }
        if self.flags:
            out["flags"] = list(self.flags)
        if self.details:
            out["details"] = dict(self.details)
        return out


def _num(d: Dict[str, Any], key: str, default: Optional[float] = 0.0) -> Optional[float]:
    v = to_float(d.get(key))
    return default if v is None else v


class AnalysisScorer:
    @staticmethod
    def sentiment(fd: Dict[str, Any], ks: Dict[str, Any]) -> Scorecard:
        """Analyst, price-target and institutional support points (0-10)."""
        card = Scorecard(0, 10)
        rec = _num(fd, "recommendationMean", 3.0)
        if rec < 2:
            card.score += 3
            card.breakdown.append("Strong analyst consensus (+3)")
        elif rec < 2.5:
            card.score += 2
            card.breakdown.append("Positive analyst consensus (+2)")
        elif rec < 3:
            card.score += 1
            card.breakdown.append("Mild analyst support (+1)")

        price = _num(fd, "currentPrice")
        target = _num(fd, "targetMedianPrice")
        if price:
            premium = (target - price) / price
            if premium > 0.2:
                card.score += 3
                card.breakdown.append("Significant target upside (+3)")
            elif premium > 0.1:
                card.score += 2
                card.breakdown.append("Moderate target upside (+2)")
            elif premium > 0:
                card.score += 1
                card.breakdown.append("Limited target upside (+1)")

        inst = _num(ks, "heldPercentInstitutions")
        if inst > 0.8:
            card.score += 4
            card.breakdown.append("Very strong institutional ownership (+4)")
        elif inst > 0.6:
            card.score += 2
            card.breakdown.append("Strong institutional ownership (+2)")
        return card

    @staticmethod
    def technical(ks: Dict[str, Any]) -> Scorecard:
        """Trend, relative strength, beta and ownership points (0-10)."""
        card = Scorecard(0, 10)
        change = _num(ks, "52WeekChange")
        spx = _num(ks, "SandP52WeekChange")
        beta = _num(ks, "beta", 1.0)

        if change > 0.2:
            card.score += 3
            card.breakdown.append("Strong uptrend (+3)")
        elif change > 0.1:
            card.score += 2
            card.breakdown.append("Moderate uptrend (+2)")
        elif change > 0:
            card.score += 1
            card.breakdown.append("Slight uptrend (+1)")

        if change > spx + 0.1:
            card.score += 3
            card.breakdown.append("Significant market outperformance (+3)")
        elif change > spx:
            card.score += 2
            card.breakdown.append("Market outperformance (+2)")

        if 0.8 < beta < 1.2:
            card.score += 2
            card.breakdown.append("Balanced market sensitivity (+2)")

        if _num(ks, "heldPercentInstitutions") > 0.7:
            card.score += 2
            card.breakdown.append("Institutional support (+2)")
        return card

    @staticmethod
    def momentum(ks: Dict[str, Any]) -> Scorecard:
        card = Scorecard(0, 8)
        change = _num(ks, "52WeekChange")
        spx = _num(ks, "SandP52WeekChange")

        for threshold, points in ((0.3, 4), (0.2, 3), (0.1, 2), (0, 1)):
            if change > threshold:
                card.score += points
                card.breakdown.append(f"Price momentum above {threshold:.0%} (+{points})")
                break

        excess = change - spx
        for threshold, points in ((0.15, 3), (0.05, 2), (0, 1)):
            if excess > threshold:
                card.score += points
                card.breakdown.append(f"Relative strength above {threshold:.0%} (+{points})")
                break

        if _num(ks, "shortRatio", 2.0) < 3:
            card.score += 1
            card.breakdown.append("Low short interest (+1)")
        return card

    @staticmethod
    def options(ks: Dict[str, Any]) -> Scorecard:
        card = Scorecard(0, 6)
        pcr = _num(ks, "putCallRatio", 1.0)
        if pcr < 0.8:
            card.score += 3
            card.breakdown.append("Bullish put/call ratio (+3)")
        elif pcr < 1.0:
            card.score += 2
            card.breakdown.append("Moderately bullish put/call ratio (+2)")
        elif pcr < 1.2:
            card.score += 1
            card.breakdown.append("Neutral put/call ratio (+1)")

        if _num(ks, "heldPercentInstitutions") > 0.7:
            card.score += 2
            card.breakdown.append("Institutional support (+2)")
        if _num(ks, "shortRatio", 2.0) < 5:
            card.score += 1
            card.breakdown.append("Manageable short interest (+1)")
        return card

    @staticmethod
    def volume(ks: Dict[str, Any]) -> Scorecard:
        card = Scorecard(0, 5)
        avg = _num(ks, "averageVolume")
        avg10 = _num(ks, "averageVolume10Day")
        if avg10:
            if avg > avg10 * 1.2:
                card.score += 3
                card.breakdown.append("Volume well above recent average (+3)")
            elif avg > avg10:
                card.score += 2
                card.breakdown.append("Volume above recent average (+2)")

        float_shares = _num(ks, "floatShares")
        if float_shares > 1e9:
            card.score += 2
            card.breakdown.append("Deep share float (+2)")
        elif float_shares > 5e8:
            card.score += 1
            card.breakdown.append("Adequate share float (+1)")
        return card

    @staticmethod
    def balance_sheet(fd: Dict[str, Any]) -> Scorecard:
        card = Scorecard(0, 6)
        de = _num(fd, "debtToEquity")
        if de < 30:
            card.score += 2
            card.breakdown.append("Low leverage (+2)")
        elif de < 50:
            card.score += 1
            card.breakdown.append("Moderate leverage (+1)")

        cr = _num(fd, "currentRatio")
        if cr > 2:
            card.score += 2
            card.breakdown.append("Strong liquidity (+2)")
        elif cr > 1.5:
            card.score += 1
            card.breakdown.append("Adequate liquidity (+1)")

        assets = _num(fd, "totalAssets")
        if assets:
            wc = (_num(fd, "totalCurrentAssets") - _num(fd, "totalCurrentLiabilities")) / assets
            if wc > 0.2:
                card.score += 2
                card.breakdown.append("Healthy working capital (+2)")
            elif wc > 0.1:
                card.score += 1
                card.breakdown.append("Positive working capital (+1)")
        return card

    @staticmethod
    def risk_metrics(fd: Dict[str, Any], ks: Dict[str, Any]) -> Scorecard:
        """Leverage, liquidity and profitability points capped at 6, plus risk flags."""
        card = Scorecard(0, 6)
        de = _num(fd, "debtToEquity")
        cr = _num(fd, "currentRatio")
        net_margin = _num(fd, "profitMargins") * 100
        beta = _num(ks, "beta", 1.0)

        if de < 30:
            card.score += 2
        elif de < 70:
            card.score += 1
        if cr > 2:
            card.score += 2
        elif cr > 1:
            card.score += 1
        if net_margin > 15:
            card.score += 2
        elif net_margin > 5:
            card.score += 1
        card.score = min(card.score, 6)

        if de > 100:
            card.flags.append("High leverage ratio")
        if cr < 1:
            card.flags.append("Poor liquidity position")
        if net_margin < 0:
            card.flags.append("Negative profit margins")
        if beta < 1.2:
            card.flags.append("Market volatility exposure")
        concentration = to_float(fd.get("segmentConcentration"))
        if concentration is not None and concentration > 0.5:
            card.flags.append("High revenue concentration")

        card.details = {
            "leverage": "Low" if de < 70 else "High",
            "liquidity": "Adequate" if cr > 1 else "Poor",
            "marketRisk": "Moderate" if beta < 1.2 else "High",
        }
        card.breakdown = [f"{k}: {v}" for k, v in card.details.items()]
        return card

