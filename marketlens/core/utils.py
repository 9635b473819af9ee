from __future__ import annotations
import json
import os
from datetime import datetime
from typing import Any


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def resolve_artifacts_path(cfg_outputs: dict) -> str:
    pattern = cfg_outputs.get("path", "artifacts/run_{date}")
    today = datetime.now().strftime("%Y%m%d")
    return pattern.format(date=today)


def write_json(data: Any, path: str) -> str:
    ensure_dir(os.path.dirname(path) or ".")
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)
    return path


def write_parquet_or_csv(df, path: str) -> str:
    """
    Attempt to write parquet; if no parquet engine is installed, write CSV instead.
    Returns the actual written file path.
    """
    ensure_dir(os.path.dirname(path) or ".")
    try:
        df.to_parquet(path, index=False)
        return path
    except ImportError:
        alt = path[:-8] + ".csv" if path.endswith(".parquet") else path + ".csv"
        df.to_csv(alt, index=False)
        return alt
