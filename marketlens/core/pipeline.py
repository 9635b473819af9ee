import argparse
import asyncio
import os

import pandas as pd
import yaml

from marketlens.analysis.framework import analyze_asset
from marketlens.bonds.service import BondAnalyzer
from marketlens.core.report import make_report
from marketlens.core.utils import (
    ensure_dir,
    resolve_artifacts_path,
    write_json,
    write_parquet_or_csv,
)
from marketlens.data import loader
from marketlens.data.providers import DataProvider


async def _fetch(provider: DataProvider, symbol: str, days: int):
    return await asyncio.gather(provider.history(symbol, days), provider.fundamentals(symbol))


def _load(symbol: str, days: int, source: str, timeframe, provider: DataProvider):
    if source == "yfinance":
        if timeframe == "short":
            history = loader.load_four_hour(symbol)
        else:
            history = loader.load_history(symbol, days)
        return history, loader.load_fundamentals(symbol)
    return asyncio.run(_fetch(provider, symbol, days))


def run(cfg: dict, provider: DataProvider = None, bonds: BondAnalyzer = None) -> str:
    """Analyze every configured ticker and bond, write artifacts and return the run directory."""
    provider = provider or DataProvider()
    universe = cfg.get("universe", {})
    tickers = universe.get("tickers", [])
    bond_symbols = universe.get("bonds", [])
    days = int(cfg.get("history", {}).get("days", 365))
    timeframe = cfg.get("history", {}).get("timeframe")
    source = cfg.get("history", {}).get("source", "providers")

    run_dir = resolve_artifacts_path(cfg.get("outputs", {"path": "artifacts/run_{date}"}))
    ensure_dir(run_dir)

    # 1) Stocks: history + fundamentals -> analysis
    stocks = {}
    for symbol in tickers:
        history, raw = _load(symbol, days, source, timeframe, provider)
        if history:
            write_parquet_or_csv(pd.DataFrame(history), os.path.join(run_dir, f"{symbol}_prices.parquet"))
        stocks[symbol] = analyze_asset(symbol, history, raw, timeframe=timeframe)
        write_json(stocks[symbol], os.path.join(run_dir, f"{symbol}.json"))
        print(f"✅ {symbol}: {len(history)} points, {len(stocks[symbol]['patterns'])} patterns")

    # 2) Bonds
    bond_results = {}
    if bond_symbols:
        bonds = bonds or BondAnalyzer()
        for symbol in bond_symbols:
            try:
                bond_results[symbol] = bonds.full_analytics(symbol)
            except KeyError as e:
                print(f"⚠️ Skipping bond {symbol}: {e}")
                continue
            write_json(bond_results[symbol], os.path.join(run_dir, f"{symbol}.json"))
        write_json(bonds.yield_curve(), os.path.join(run_dir, "yield_curve.json"))

    # 3) Text report
    print(make_report(stocks, bond_results, outdir=run_dir))
    return run_dir


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", required=True)
    args = ap.parse_args()
    with open(args.config) as f:
        cfg = yaml.safe_load(f)
    run(cfg)


if __name__ == "__main__":
    main()
