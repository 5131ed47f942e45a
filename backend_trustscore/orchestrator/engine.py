"""
Score orchestrator: cache, per-subject locking, degraded responses.

Operations:
- get_or_recompute(subject_id): fresh cache hit, else one pipeline run per
  subject under its lock (concurrent callers wait and re-check the cache)
- invalidate(subject_id): drop the cached score
- record_violation(subject_id, type, context): validate, then under the
  lock recompute from a fresh snapshot, apply the penalty, record it

Degraded modes (nothing is fatal):
- lock timeout: last cached score marked stale, else ScoreUnavailableError
- snapshot fetch or violation history failure: last cached score marked
  stale, else SignalSourceUnavailableError / ViolationStoreUnavailableError
  (both retryable)
- persistence failure: result returned with warning "persistence_failed"
- notifier failure: logged and ignored

Score changes are published after the subject lock is released, so a slow
notifier never delays other callers for the same subject.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from typing import Any, Callable

from backend_trustscore.config.settings import Settings
from backend_trustscore.orchestrator.cache import ScoreCache
from backend_trustscore.orchestrator.collaborators import (
    InMemoryScorePersistence,
    LoggingNotifier,
    ScoreChange,
    ScoreNotifier,
    ScorePersistence,
    SignalSource,
    ViolationLedger,
)
from backend_trustscore.orchestrator.locks import LockTimeout, SubjectLockTable
from backend_trustscore.scoring.config import ScoringConfig
from backend_trustscore.scoring.errors import (
    DependencyUnavailableError,
    InvalidInputError,
    InvalidSignalError,
    ScoreUnavailableError,
    SignalSourceUnavailableError,
    ViolationStoreUnavailableError,
)
from backend_trustscore.scoring.models import TrustScoreResult, ViolationRecord
from backend_trustscore.scoring.penalties import apply_penalty, penalty_rule, violation_summary
from backend_trustscore.scoring.pipeline import compute_trust_score
from backend_trustscore.scoring.restrictions import can_perform
from backend_trustscore.scoring.signals import SignalSnapshot
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

WARNING_PERSISTENCE_FAILED = "persistence_failed"

SnapshotProvider = Callable[[str], SignalSnapshot]


def _validate_subject_id(subject_id: Any) -> str:
    if not isinstance(subject_id, str) or not subject_id.strip():
        raise InvalidSignalError("subject_id", "must be a non-empty string")
    return subject_id


class TrustScoreOrchestrator:
    """
    Serves trust scores for subjects, recomputing at most once per subject at a time.

    All collaborators are injected; defaults are in-memory adapters. The
    pipeline_runs counter counts full pipeline executions.
    """

    def __init__(
        self,
        signal_source: SignalSource,
        persistence: ScorePersistence | None = None,
        notifier: ScoreNotifier | None = None,
        cache: ScoreCache | None = None,
        locks: SubjectLockTable | None = None,
        ledger: ViolationLedger | None = None,
        config: ScoringConfig | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        settings = settings or Settings()
        self.settings = settings
        self.config = (config or settings.scoring_config()).validate()
        self.signal_source = signal_source
        self.persistence = persistence if persistence is not None else InMemoryScorePersistence()
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        if cache is None:
            cache = ScoreCache(settings.cache_ttl_sec, clock, settings.cache_max_entries)
        self.cache = cache
        self.locks = locks if locks is not None else SubjectLockTable()
        self.ledger = ledger if ledger is not None else ViolationLedger()
        self.lock_timeout_sec = settings.lock_timeout_sec
        self._clock = clock
        self._runs_lock = threading.Lock()
        self._pipeline_runs = 0

    @property
    def pipeline_runs(self) -> int:
        with self._runs_lock:
            return self._pipeline_runs

    def _now_ts(self) -> int:
        return int(self._clock())

    # -------------------------------------------------------------------------
    # Query surface
    # -------------------------------------------------------------------------

    def get_or_recompute(
        self,
        subject_id: str,
        snapshot_provider: SnapshotProvider | None = None,
    ) -> TrustScoreResult:
        """
        Return a fresh score for subject_id, computing it if needed.

        Args:
            subject_id: Subject to score.
            snapshot_provider: Optional callable overriding the signal source for this call.

        Returns:
            TrustScoreResult; stale=True when served from cache in a degraded mode.

        Raises:
            InvalidInputError: subject id or snapshot is malformed.
            ScoreUnavailableError: lock wait timed out and nothing is cached.
            SignalSourceUnavailableError: snapshot fetch failed and nothing is cached.
            ViolationStoreUnavailableError: violation history failed to load and nothing is cached.
        """
        _validate_subject_id(subject_id)
        cached = self.cache.get_fresh(subject_id)
        if cached is not None:
            return cached
        try:
            with self.locks.acquire(subject_id, self.lock_timeout_sec):
                # another caller may have finished while we waited
                cached = self.cache.get_fresh(subject_id)
                if cached is not None:
                    return cached
                try:
                    snapshot = self._fetch_snapshot(subject_id, snapshot_provider)
                    history = self._history(subject_id)
                except DependencyUnavailableError as e:
                    return self._stale_or_raise(subject_id, e)
                previous = self.cache.get_any(subject_id)
                result, change = self._store(
                    subject_id,
                    self._run_pipeline(snapshot, history),
                    previous.result.display_score if previous else None,
                    reason="recompute",
                )
        except LockTimeout:
            logger.warning("score_lock_timeout", subject_id=subject_id, timeout_sec=self.lock_timeout_sec)
            return self._stale_or_raise(subject_id, ScoreUnavailableError(subject_id, self.lock_timeout_sec))
        self._publish(change)
        return result

    def invalidate(self, subject_id: str) -> bool:
        """Drop the cached score so the next read recomputes. True if something was cached."""
        _validate_subject_id(subject_id)
        removed = self.cache.invalidate(subject_id)
        logger.info("score_invalidated", subject_id=subject_id, removed=removed)
        return removed

    def record_violation(
        self,
        subject_id: str,
        violation_type: str,
        context: dict[str, Any] | None = None,
    ) -> TrustScoreResult:
        """
        Apply a violation to subject_id and return the penalised score.

        The type is validated before anything else; an unknown type raises
        UnknownViolationError with no state change. Under the subject lock:
        fetch a snapshot and the violation history, invalidate the cache,
        recompute (replaying earlier violations), apply the penalty, append
        the record, cache. The change is published once the lock is released.

        Raises:
            UnknownViolationError: type not in the penalty catalogue.
            ScoreUnavailableError: subject lock not acquired in time.
            SignalSourceUnavailableError: snapshot fetch failed; nothing recorded.
            ViolationStoreUnavailableError: violation history unavailable; nothing recorded.
        """
        _validate_subject_id(subject_id)
        key, _ = penalty_rule(violation_type, self.config)
        if context is not None and not isinstance(context, dict):
            raise InvalidInputError("violation context must be an object")
        try:
            with self.locks.acquire(subject_id, self.lock_timeout_sec):
                snapshot = self._fetch_snapshot(subject_id, None)
                history = self._history(subject_id)
                previous = self.cache.get_any(subject_id)
                old_score = previous.result.display_score if previous else None
                self.cache.invalidate(subject_id)

                now_ts = self._now_ts()
                base = self._run_pipeline(snapshot, history, now_ts)
                record, result = apply_penalty(base, key, context, history, self.config, now_ts)
                self._append_to_ledger(subject_id, record)
                warnings: list[str] = []
                try:
                    self.persistence.append_violation(subject_id, record)
                except Exception as e:
                    logger.warning(
                        "violation_persist_failed",
                        subject_id=subject_id,
                        violation_type=key,
                        error=str(e),
                    )
                    warnings.append(WARNING_PERSISTENCE_FAILED)
                result, change = self._store(subject_id, result, old_score, reason=f"violation:{key}", warnings=warnings)
        except LockTimeout:
            logger.warning("violation_lock_timeout", subject_id=subject_id, violation_type=key)
            raise ScoreUnavailableError(subject_id, self.lock_timeout_sec) from None
        self._publish(change)
        return result

    # -------------------------------------------------------------------------
    # Read-only helpers over the current score and history
    # -------------------------------------------------------------------------

    def check_action(self, subject_id: str, action: str) -> dict[str, Any]:
        """Whether subject_id may perform action under its current restriction."""
        return can_perform(self.get_or_recompute(subject_id), action)

    def violation_summary(self, subject_id: str) -> dict[str, Any]:
        """Violation patterns, risk level and moderator recommendation for subject_id."""
        _validate_subject_id(subject_id)
        return violation_summary(self._history(subject_id), self._now_ts())

    # -------------------------------------------------------------------------
    # Internals (callers hold the subject lock)
    # -------------------------------------------------------------------------

    def _fetch_snapshot(self, subject_id: str, provider: SnapshotProvider | None) -> SignalSnapshot:
        fetch = provider or self.signal_source.fetch_snapshot
        try:
            snapshot = fetch(subject_id)
        except InvalidInputError:
            raise
        except Exception as e:
            logger.warning("signal_source_failed", subject_id=subject_id, error=str(e))
            raise SignalSourceUnavailableError(subject_id, str(e)) from e
        if not isinstance(snapshot, SignalSnapshot):
            raise InvalidSignalError("snapshot", f"signal source returned {type(snapshot).__name__}")
        if snapshot.subject_id != subject_id:
            raise InvalidSignalError("subject_id", f"snapshot is for {snapshot.subject_id!r}")
        return snapshot

    def _history(self, subject_id: str) -> tuple[ViolationRecord, ...]:
        try:
            return self.ledger.history(subject_id)
        except Exception as e:
            logger.warning("violation_store_failed", subject_id=subject_id, error=str(e))
            raise ViolationStoreUnavailableError(subject_id, str(e)) from e

    def _append_to_ledger(self, subject_id: str, record: ViolationRecord) -> None:
        try:
            self.ledger.append(subject_id, record)
        except Exception as e:
            logger.warning("violation_store_failed", subject_id=subject_id, error=str(e))
            raise ViolationStoreUnavailableError(subject_id, str(e)) from e

    def _run_pipeline(
        self,
        snapshot: SignalSnapshot,
        history: tuple[ViolationRecord, ...],
        now_ts: int | None = None,
    ) -> TrustScoreResult:
        with self._runs_lock:
            self._pipeline_runs += 1
        return compute_trust_score(
            snapshot,
            history,
            self.config,
            now_ts if now_ts is not None else self._now_ts(),
        )

    def _stale_or_raise(self, subject_id: str, error: Exception) -> TrustScoreResult:
        entry = self.cache.get_any(subject_id)
        if entry is None:
            raise error
        logger.info(
            "stale_score_served",
            subject_id=subject_id,
            age_sec=round(entry.age(self.cache.now()), 1),
            cause=type(error).__name__,
        )
        return dataclasses.replace(entry.result, stale=True)

    def _store(
        self,
        subject_id: str,
        result: TrustScoreResult,
        old_score: int | None,
        reason: str,
        warnings: list[str] | None = None,
    ) -> tuple[TrustScoreResult, ScoreChange | None]:
        """Cache and persist; persistence failures become warnings. Returns the change to publish."""
        self.cache.set(subject_id, result)
        warnings = list(warnings or [])
        try:
            self.persistence.persist(subject_id, result)
        except Exception as e:
            logger.warning("score_persist_failed", subject_id=subject_id, error=str(e))
            if WARNING_PERSISTENCE_FAILED not in warnings:
                warnings.append(WARNING_PERSISTENCE_FAILED)
        change = None
        if old_score != result.display_score or reason != "recompute":
            change = ScoreChange(subject_id, old_score, result.display_score, reason)
        logger.info(
            "score_stored",
            subject_id=subject_id,
            display_score=result.display_score,
            reason=reason,
            warnings=warnings,
        )
        if warnings:
            result = dataclasses.replace(result, warnings=tuple(warnings))
        return result, change

    def _publish(self, change: ScoreChange | None) -> None:
        """Best-effort notification; runs without the subject lock held."""
        if change is None:
            return
        try:
            self.notifier.publish_score_change(
                change.subject_id, change.old_score, change.new_score, change.reason,
            )
        except Exception as e:
            logger.warning("score_notify_failed", subject_id=change.subject_id, error=str(e))
