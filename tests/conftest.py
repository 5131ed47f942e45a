"""
Pytest fixtures for trust score tests. Frozen clock, in-memory collaborators,
temporary SQLite store, FastAPI TestClient.
"""

from __future__ import annotations

import pytest

NOW_TS = 1_750_000_000
DAY = 86400


class FakeClock:
    """Callable clock returning a settable unix time."""

    def __init__(self, start: float = NOW_TS) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    from backend_trustscore.scoring.config import ScoringConfig

    return ScoringConfig().validate()


@pytest.fixture
def zero_result(config):
    """Aggregated result for a subject with no recorded activity (score 50)."""
    from backend_trustscore.scoring.pipeline import compute_trust_score
    from backend_trustscore.scoring.signals import SignalSnapshot

    return compute_trust_score(SignalSnapshot.zeroed("alice"), config=config, now_ts=NOW_TS)


@pytest.fixture
def make_orchestrator(clock):
    """
    Factory for an orchestrator wired to in-memory adapters and the fake clock.
    Keyword overrides replace collaborators; settings default to a short lock timeout.
    """
    from backend_trustscore.config.settings import Settings
    from backend_trustscore.orchestrator import (
        InMemoryScorePersistence,
        InMemorySignalSource,
        RecordingNotifier,
        TrustScoreOrchestrator,
    )

    def _make(**overrides):
        kwargs = {
            "signal_source": InMemorySignalSource(),
            "persistence": InMemoryScorePersistence(),
            "notifier": RecordingNotifier(),
            "settings": Settings(cache_ttl_sec=300.0, lock_timeout_sec=0.05),
            "clock": clock,
        }
        kwargs.update(overrides)
        return TrustScoreOrchestrator(**kwargs)

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def score_store(tmp_path, monkeypatch):
    """SqlScoreStore on a temporary SQLite DB with tables created. Unset DATABASE_URL so we use SQLite."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TRUST_DB_URL", raising=False)

    from backend_trustscore.database.score_store import SqlScoreStore

    store = SqlScoreStore(f"sqlite:///{tmp_path / 'trustscore.db'}")
    store.init_db()
    yield store
    store.dispose()


@pytest.fixture
def client(orchestrator):
    """FastAPI TestClient over an app with the in-memory orchestrator injected."""
    from fastapi.testclient import TestClient

    from backend_trustscore.api_server.server import create_app

    return TestClient(create_app(orchestrator))
