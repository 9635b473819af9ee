from __future__ import annotations
import os
from typing import Optional

from dotenv import load_dotenv, find_dotenv

# Load environment variables from .env file
load_dotenv(find_dotenv())


def get_env_var(name: str) -> Optional[str]:
    """Get env var from process or .env file (fallback)."""
    val = os.getenv(name)
    if val:
        return val
    for path in (".env", "../.env"):
        if not os.path.exists(path):
            continue
        with open(path) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith(name + "="):
                    return line.split("=", 1)[1].strip()
    return None


def is_test_mode() -> bool:
    return bool(os.getenv("PYTEST_CURRENT_TEST"))


def twelve_data_key() -> Optional[str]:
    return get_env_var("TWELVE_DATA_API_KEY")


def alphavantage_key() -> Optional[str]:
    return get_env_var("ALPHAVANTAGE_API_KEY")


def fmp_key() -> Optional[str]:
    return get_env_var("FMP_API_KEY")


def fred_key() -> Optional[str]:
    return get_env_var("FRED_API_KEY")


COINGECKO_BASE_URL = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
CACHE_DIR = os.getenv("MARKETLENS_CACHE_DIR", os.path.join("data", "fred"))
CACHE_TTL_SECONDS = int(os.getenv("MARKETLENS_CACHE_TTL", "86400"))
