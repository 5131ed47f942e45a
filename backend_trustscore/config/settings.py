"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and .env files.
- Provide defaults for optional settings.
- Expose typed settings (cache TTL and size, lock timeout, score caps, DB URL, API
  host/port) for the orchestrator, persistence adapter and API server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from backend_trustscore.config.env import env_float, env_int, env_str, load_trust_env

if TYPE_CHECKING:
    from backend_trustscore.scoring.config import ScoringConfig

DEFAULT_CACHE_TTL_SEC = 300.0
DEFAULT_LOCK_TIMEOUT_SEC = 5.0
DEFAULT_CACHE_MAX_ENTRIES = 10_000
DEFAULT_LEDGER_MAX_SUBJECTS = 10_000
DEFAULT_INTERNAL_CAP = 200
DEFAULT_DISPLAY_CAP = 100
DEFAULT_RECOVERY_THRESHOLD = 40
DEFAULT_SQLITE_PATH = "trustscore.db"


@dataclass(frozen=True)
class Settings:
    """Process-level settings; scoring tunables hang off scoring_config()."""

    cache_ttl_sec: float = DEFAULT_CACHE_TTL_SEC
    lock_timeout_sec: float = DEFAULT_LOCK_TIMEOUT_SEC
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    ledger_max_subjects: int = DEFAULT_LEDGER_MAX_SUBJECTS
    internal_cap: int = DEFAULT_INTERNAL_CAP
    display_cap: int = DEFAULT_DISPLAY_CAP
    recovery_threshold: int = DEFAULT_RECOVERY_THRESHOLD
    database_url: str = f"sqlite:///{DEFAULT_SQLITE_PATH}"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    def scoring_config(self) -> ScoringConfig:
        """Default scoring tables with the caps/threshold overridden from env."""
        from backend_trustscore.scoring.config import ScoringConfig

        return ScoringConfig(
            internal_cap=self.internal_cap,
            display_cap=self.display_cap,
            recovery_threshold=self.recovery_threshold,
        )


def _database_url() -> str:
    """TRUST_DB_URL or DATABASE_URL if set; else SQLite at TRUST_DB_PATH."""
    url = env_str("TRUST_DB_URL", "") or env_str("DATABASE_URL", "")
    if url:
        return url
    return f"sqlite:///{env_str('TRUST_DB_PATH', DEFAULT_SQLITE_PATH)}"


def get_settings() -> Settings:
    """
    Return the current application settings.

    Reads env on every call (after loading .env) so tests can monkeypatch
    variables without module reloads.
    """
    load_trust_env()
    return Settings(
        cache_ttl_sec=env_float("TRUST_CACHE_TTL_SEC", DEFAULT_CACHE_TTL_SEC),
        lock_timeout_sec=env_float("TRUST_LOCK_TIMEOUT_SEC", DEFAULT_LOCK_TIMEOUT_SEC),
        cache_max_entries=env_int("TRUST_CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES),
        ledger_max_subjects=env_int("TRUST_LEDGER_MAX_SUBJECTS", DEFAULT_LEDGER_MAX_SUBJECTS),
        internal_cap=env_int("TRUST_INTERNAL_CAP", DEFAULT_INTERNAL_CAP),
        display_cap=env_int("TRUST_DISPLAY_CAP", DEFAULT_DISPLAY_CAP),
        recovery_threshold=env_int("TRUST_RECOVERY_THRESHOLD", DEFAULT_RECOVERY_THRESHOLD),
        database_url=_database_url(),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
        log_level=env_str("LOG_LEVEL", "INFO").upper(),
    )
