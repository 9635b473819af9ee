from __future__ import annotations
import os
from typing import Any, Dict, List, Optional


def _section_line(sec: Dict[str, Any]) -> str:
    return f"  [{sec.get('id', '?')}] {sec['title']}: {sec.get('summary', '')}"


def make_report(
    stocks: Dict[str, Dict[str, Any]],
    bonds: Optional[Dict[str, Dict[str, Any]]] = None,
    outdir: Optional[str] = None,
) -> str:
    lines: List[str] = ["=== Market Analysis Report ==="]
    for symbol, result in stocks.items():
        summary = result.get("technicalSummary") or {}
        overall = (summary.get("overall") or {}).get("summary", "No technical summary available")
        lines.append(f"\n{symbol} ({result.get('points', 0)} points)")
        lines.append(f"  Technicals: {overall}")
        patterns = result.get("patterns") or []
        if patterns:
            lines.append(
                "  Patterns: "
                + ", ".join(f"{p['name']} ({p['completionStatus']})" for p in patterns)
            )
        for sec in result.get("sections") or []:
            lines.append(_section_line(sec))

    for symbol, analytics in (bonds or {}).items():
        overview = analytics.get("overview", {})
        risk = analytics.get("riskMetrics", {})
        lines.append(f"\n{symbol} {overview.get('name', '')}")
        lines.append(
            f"  Yield {overview.get('yieldToMaturity', 'N/A')}, "
            f"duration {risk.get('modifiedDuration', 'N/A')}, "
            f"VaR95 {risk.get('valueAtRisk95', 'N/A')}"
        )

    text = "\n".join(lines)
    if outdir:
        os.makedirs(outdir, exist_ok=True)
        with open(os.path.join(outdir, "report.txt"), "w") as f:
            f.write(text + "\n")
    return text
