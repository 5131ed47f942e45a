"""
Score orchestration: TTL cache, per-subject locks, collaborators.

TrustScoreOrchestrator is the only stateful component; the scoring
pipeline it drives is pure.
"""

from backend_trustscore.orchestrator.cache import CacheEntry, ScoreCache
from backend_trustscore.orchestrator.collaborators import (
    InMemoryScorePersistence,
    InMemorySignalSource,
    LoggingNotifier,
    RecordingNotifier,
    ScoreNotifier,
    ScorePersistence,
    SignalSource,
    ViolationLedger,
)
from backend_trustscore.orchestrator.engine import TrustScoreOrchestrator
from backend_trustscore.orchestrator.locks import LockTimeout, SubjectLockTable

__all__ = [
    "CacheEntry",
    "InMemoryScorePersistence",
    "InMemorySignalSource",
    "LockTimeout",
    "LoggingNotifier",
    "RecordingNotifier",
    "ScoreCache",
    "ScoreNotifier",
    "ScorePersistence",
    "SignalSource",
    "SubjectLockTable",
    "TrustScoreOrchestrator",
    "ViolationLedger",
]
