"""
Collaborator interfaces consumed by the orchestrator, with in-memory adapters.

- SignalSource: fetch_snapshot(subject_id) -> SignalSnapshot. Must be total:
  an unknown but valid subject gets a zeroed snapshot, not an error.
- ScorePersistence: persist(subject_id, result), append_violation(subject_id, record).
- ScoreNotifier: publish_score_change(subject_id, old, new, reason). Best effort.
- ViolationLedger: append-only per-subject violation history for lookback
  queries and replay on recomputation.

SQL persistence lives in backend_trustscore.database.score_store.
"""

from __future__ import annotations

import threading
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from backend_trustscore.scoring.models import TrustScoreResult, ViolationRecord
from backend_trustscore.scoring.signals import SignalSnapshot
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_LOADED_SUBJECTS = 10_000


@runtime_checkable
class SignalSource(Protocol):
    def fetch_snapshot(self, subject_id: str) -> SignalSnapshot: ...


@runtime_checkable
class ScorePersistence(Protocol):
    def persist(self, subject_id: str, result: TrustScoreResult) -> None: ...

    def append_violation(self, subject_id: str, record: ViolationRecord) -> None: ...


@runtime_checkable
class ScoreNotifier(Protocol):
    def publish_score_change(
        self,
        subject_id: str,
        old_score: int | None,
        new_score: int,
        reason: str,
    ) -> None: ...


class InMemorySignalSource:
    """Snapshots held in a dict; unknown subjects get a zeroed snapshot."""

    def __init__(self, snapshots: Mapping[str, SignalSnapshot] | None = None) -> None:
        self._snapshots: dict[str, SignalSnapshot] = dict(snapshots or {})
        self._lock = threading.Lock()
        self.fetch_count = 0

    def put(self, snapshot: SignalSnapshot) -> None:
        with self._lock:
            self._snapshots[snapshot.subject_id] = snapshot

    def put_dict(self, subject_id: str, data: Mapping[str, Any]) -> SignalSnapshot:
        """Validate a raw payload and store it; raises InvalidSignalError on bad input."""
        snapshot = SignalSnapshot.from_dict(data, subject_id=subject_id)
        self.put(snapshot)
        return snapshot

    def fetch_snapshot(self, subject_id: str) -> SignalSnapshot:
        with self._lock:
            self.fetch_count += 1
            snapshot = self._snapshots.get(subject_id)
        return snapshot if snapshot is not None else SignalSnapshot.zeroed(subject_id)


class InMemoryScorePersistence:
    """
    Score history and violation log held in memory, for tests and local runs.

    Only the last max_scores_per_subject results are kept per subject.
    """

    def __init__(self, max_scores_per_subject: int = 20) -> None:
        self._lock = threading.Lock()
        self.max_scores_per_subject = max_scores_per_subject
        self.scores: dict[str, deque[TrustScoreResult]] = {}
        self.violations: dict[str, list[ViolationRecord]] = {}

    def persist(self, subject_id: str, result: TrustScoreResult) -> None:
        with self._lock:
            history = self.scores.get(subject_id)
            if history is None:
                history = self.scores[subject_id] = deque(maxlen=self.max_scores_per_subject)
            history.append(result)

    def append_violation(self, subject_id: str, record: ViolationRecord) -> None:
        with self._lock:
            self.violations.setdefault(subject_id, []).append(record)


class LoggingNotifier:
    """Publishes score changes as structured log events."""

    def publish_score_change(
        self,
        subject_id: str,
        old_score: int | None,
        new_score: int,
        reason: str,
    ) -> None:
        logger.info(
            "score_change_published",
            subject_id=subject_id,
            old_score=old_score,
            new_score=new_score,
            reason=reason,
        )


@dataclass(frozen=True)
class ScoreChange:
    subject_id: str
    old_score: int | None
    new_score: int
    reason: str


class RecordingNotifier:
    """Keeps every published change; used by tests and local tooling."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.changes: list[ScoreChange] = []

    def publish_score_change(
        self,
        subject_id: str,
        old_score: int | None,
        new_score: int,
        reason: str,
    ) -> None:
        with self._lock:
            self.changes.append(ScoreChange(subject_id, old_score, new_score, reason))


class ViolationLedger:
    """
    Append-only violation history per subject.

    Records are returned as tuples so callers cannot mutate the ledger.

    With a loader, the ledger is a bounded read-through cache over durable
    storage: a subject's history is loaded on first use and the least
    recently used subjects are dropped beyond max_loaded_subjects (they are
    reloaded on next use). Loader errors propagate to the caller.

    Without a loader the ledger is the only copy, so nothing is evicted and
    reads for subjects without violations store nothing.
    """

    def __init__(
        self,
        loader: Callable[[str], list[ViolationRecord]] | None = None,
        max_loaded_subjects: int = DEFAULT_MAX_LOADED_SUBJECTS,
    ) -> None:
        if max_loaded_subjects < 1:
            raise ValueError("max_loaded_subjects must be at least 1")
        self._lock = threading.Lock()
        self._records: OrderedDict[str, list[ViolationRecord]] = OrderedDict()
        self._loader = loader
        self.max_loaded_subjects = max_loaded_subjects

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _cached(self, subject_id: str) -> list[ViolationRecord] | None:
        # caller holds self._lock
        records = self._records.get(subject_id)
        if records is not None:
            self._records.move_to_end(subject_id)
        return records

    def _load(self, subject_id: str, record: ViolationRecord | None = None) -> tuple[ViolationRecord, ...]:
        # loader runs outside the lock so a slow store only delays this subject
        loaded = sorted(self._loader(subject_id), key=lambda r: r.timestamp)
        with self._lock:
            records = self._cached(subject_id)
            if records is None:
                records = self._records[subject_id] = loaded
            if record is not None:
                records.append(record)
            while len(self._records) > self.max_loaded_subjects:
                evicted, _ = self._records.popitem(last=False)
                logger.debug("violation_history_evicted", subject_id=evicted)
            return tuple(records)

    def append(self, subject_id: str, record: ViolationRecord) -> None:
        with self._lock:
            records = self._cached(subject_id)
            if records is None and self._loader is None:
                records = self._records[subject_id] = []
            if records is not None:
                records.append(record)
                return
        self._load(subject_id, record)

    def history(self, subject_id: str) -> tuple[ViolationRecord, ...]:
        with self._lock:
            records = self._cached(subject_id)
            if records is not None:
                return tuple(records)
            if self._loader is None:
                return ()
        return self._load(subject_id)
