import os

import pandas as pd

from marketlens.bonds.service import BondAnalyzer
from marketlens.core import pipeline
from marketlens.core.report import make_report
from marketlens.core.utils import resolve_artifacts_path, write_parquet_or_csv
from marketlens.data import loader
from marketlens.data.providers import FredClient


def _cfg(tmp_path, **history):
    return {
        "universe": {"tickers": ["AAPL"], "bonds": ["GS10", "NOPE"]},
        "history": {"days": 120, **history},
        "outputs": {"path": str(tmp_path / "run_{date}")},
    }


def test_run_writes_artifacts(tmp_path):
    bonds = BondAnalyzer(FredClient(cache_dir=str(tmp_path / "fred"), offline=True))
    run_dir = pipeline.run(_cfg(tmp_path), bonds=bonds)
    files = set(os.listdir(run_dir))
    assert {"AAPL.json", "GS10.json", "yield_curve.json", "report.txt"} <= files
    assert "NOPE.json" not in files  # unknown bond skipped
    assert files & {"AAPL_prices.parquet", "AAPL_prices.csv"}
    with open(os.path.join(run_dir, "report.txt")) as f:
        report = f.read()
    assert report.startswith("=== Market Analysis Report ===")
    assert "AAPL" in report and "GS10" in report


def test_run_with_yfinance_source(tmp_path, monkeypatch, trending_history):
    calls = []
    monkeypatch.setattr(loader, "load_four_hour", lambda t: calls.append(("4h", t)) or trending_history)
    monkeypatch.setattr(loader, "load_history", lambda t, days: calls.append(("1d", t)) or trending_history)
    monkeypatch.setattr(loader, "load_fundamentals", lambda t: {"currentPrice": 150.0})
    cfg = _cfg(tmp_path, source="yfinance", timeframe="short")
    cfg["universe"]["bonds"] = []
    run_dir = pipeline.run(cfg)
    assert calls == [("4h", "AAPL")]
    assert "AAPL.json" in os.listdir(run_dir)


def test_make_report_without_outdir():
    result = {"points": 3, "technicalSummary": None, "patterns": [],
              "sections": [{"id": "summary", "title": "Executive Summary", "summary": "n/a"}]}
    text = make_report({"XYZ": result})
    assert "XYZ (3 points)" in text
    assert "No technical summary available" in text
    assert "[summary] Executive Summary: n/a" in text


def test_utils(tmp_path):
    assert "{date}" not in resolve_artifacts_path({"path": "artifacts/run_{date}"})
    written = write_parquet_or_csv(pd.DataFrame({"a": [1, 2]}), str(tmp_path / "out" / "x.parquet"))
    assert os.path.exists(written)
