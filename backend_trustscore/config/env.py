"""
Environment variable loading for the trust score engine.

- Loads .env from the project root when available.
- Small typed readers so settings parsing stays in one place.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_trustscore/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"


def load_trust_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str) -> str:
    """Return stripped env value, or default when unset/blank."""
    raw = (os.getenv(name) or "").strip()
    return raw or default


def env_float(name: str, default: float) -> float:
    """
    Return env value as float.

    Raises ValueError naming the variable when the value is not numeric, so a
    typo in deployment config fails loudly at startup instead of at first use.
    """
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from e


def env_int(name: str, default: int) -> int:
    """Return env value as int (see env_float for error behaviour)."""
    return int(env_float(name, float(default)))
