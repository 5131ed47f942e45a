"""
Tests for env-driven settings.
"""

from __future__ import annotations

import pytest

_ENV_KEYS = (
    "TRUST_CACHE_TTL_SEC",
    "TRUST_LOCK_TIMEOUT_SEC",
    "TRUST_CACHE_MAX_ENTRIES",
    "TRUST_LEDGER_MAX_SUBJECTS",
    "TRUST_INTERNAL_CAP",
    "TRUST_DISPLAY_CAP",
    "TRUST_RECOVERY_THRESHOLD",
    "TRUST_DB_URL",
    "DATABASE_URL",
    "TRUST_DB_PATH",
    "API_PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
    return monkeypatch


def test_defaults(clean_env):
    from backend_trustscore.config.settings import get_settings

    s = get_settings()
    assert s.cache_ttl_sec == 300.0
    assert s.lock_timeout_sec == 5.0
    assert s.cache_max_entries == 10_000
    assert s.ledger_max_subjects == 10_000
    assert s.internal_cap == 200
    assert s.display_cap == 100
    assert s.recovery_threshold == 40
    assert s.database_url == "sqlite:///trustscore.db"


def test_env_overrides(clean_env):
    from backend_trustscore.config.settings import get_settings

    clean_env.setenv("TRUST_CACHE_TTL_SEC", "60")
    clean_env.setenv("TRUST_LOCK_TIMEOUT_SEC", "0.5")
    clean_env.setenv("API_PORT", "9001")
    clean_env.setenv("TRUST_CACHE_MAX_ENTRIES", "500")
    clean_env.setenv("TRUST_LEDGER_MAX_SUBJECTS", "250")
    s = get_settings()
    assert s.cache_ttl_sec == 60.0
    assert s.lock_timeout_sec == 0.5
    assert s.api_port == 9001
    assert s.cache_max_entries == 500
    assert s.ledger_max_subjects == 250


def test_non_numeric_env_names_variable(clean_env):
    from backend_trustscore.config.settings import get_settings

    clean_env.setenv("TRUST_CACHE_TTL_SEC", "five minutes")
    with pytest.raises(ValueError, match="TRUST_CACHE_TTL_SEC"):
        get_settings()


def test_database_url_precedence(clean_env, tmp_path):
    """TRUST_DB_URL beats DATABASE_URL beats TRUST_DB_PATH."""
    from backend_trustscore.config.settings import get_settings

    db_path = tmp_path / "scores.db"
    clean_env.setenv("TRUST_DB_PATH", str(db_path))
    assert get_settings().database_url == f"sqlite:///{db_path}"
    clean_env.setenv("DATABASE_URL", "postgresql://u:p@db/trust")
    assert get_settings().database_url == "postgresql://u:p@db/trust"
    clean_env.setenv("TRUST_DB_URL", "sqlite:///override.db")
    assert get_settings().database_url == "sqlite:///override.db"


def test_scoring_config_uses_caps(clean_env):
    from backend_trustscore.config.settings import get_settings

    clean_env.setenv("TRUST_INTERNAL_CAP", "180")
    clean_env.setenv("TRUST_RECOVERY_THRESHOLD", "35")
    cfg = get_settings().scoring_config().validate()
    assert cfg.internal_cap == 180
    assert cfg.display_cap == 100
    assert cfg.recovery_threshold == 35


def test_inconsistent_caps_rejected(clean_env):
    from backend_trustscore.config.settings import get_settings

    clean_env.setenv("TRUST_DISPLAY_CAP", "250")
    with pytest.raises(ValueError, match="display_cap"):
        get_settings().scoring_config().validate()
