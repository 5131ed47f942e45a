"""
Score cache: per-subject TTL cache of computed trust scores.

An explicit component injected into the orchestrator (no process-wide
state). Expired entries are kept so a caller can fall back to the last
known score when recomputation is impossible; invalidate() removes the
entry outright.

Bounded: beyond max_entries, expired entries are evicted first, then the
oldest. Thread-safe: one lock guards the entry table.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from backend_trustscore.scoring.models import TrustScoreResult
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SEC = 300.0
DEFAULT_MAX_ENTRIES = 10_000


@dataclass(frozen=True)
class CacheEntry:
    """One cached result. computed_at is the cache clock time it was stored."""

    result: TrustScoreResult
    computed_at: float
    ttl_sec: float

    def is_fresh(self, now: float) -> bool:
        return now - self.computed_at < self.ttl_sec

    def age(self, now: float) -> float:
        return max(0.0, now - self.computed_at)


class ScoreCache:
    """
    In-memory TTL cache keyed by subject id.

    Features:
    - get_fresh(): hit only within TTL
    - get_any(): last stored entry regardless of age (stale fallback)
    - invalidate(): drop the entry so the next read recomputes
    - stats(): hits, misses, stale serves, invalidations, evictions
    """

    def __init__(
        self,
        ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.time,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        """
        Args:
            ttl_sec: Freshness window for new entries.
            clock: Time source in seconds; injectable for tests.
            max_entries: Entry count above which set() evicts.
        """
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_sec = ttl_sec
        self.max_entries = max_entries
        self._clock = clock
        # insertion order == store order; set() moves a key to the end
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._stale_serves = 0
        self._invalidations = 0
        self._evictions = 0

    def now(self) -> float:
        return self._clock()

    def get_fresh(self, subject_id: str) -> TrustScoreResult | None:
        """Return the cached result if within TTL, else None (counted as a miss)."""
        with self._lock:
            entry = self._entries.get(subject_id)
            if entry is not None and entry.is_fresh(self._clock()):
                self._hits += 1
                return entry.result
            self._misses += 1
            return None

    def get_any(self, subject_id: str) -> CacheEntry | None:
        """Return the last stored entry for subject_id, fresh or not."""
        with self._lock:
            entry = self._entries.get(subject_id)
            if entry is not None and not entry.is_fresh(self._clock()):
                self._stale_serves += 1
            return entry

    def set(self, subject_id: str, result: TrustScoreResult, ttl_sec: float | None = None) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(result=result, computed_at=now, ttl_sec=ttl_sec or self.ttl_sec)
        with self._lock:
            self._entries.pop(subject_id, None)
            self._entries[subject_id] = entry
            evicted = self._evict_locked(now) if len(self._entries) > self.max_entries else []
        if evicted:
            logger.info("score_cache_evicted", count=len(evicted), entries=self.max_entries)
        return entry

    def _evict_locked(self, now: float) -> list[str]:
        # caller holds self._lock
        evicted = [sid for sid, e in self._entries.items() if not e.is_fresh(now)]
        for sid in evicted:
            del self._entries[sid]
        while len(self._entries) > self.max_entries:
            sid, _ = self._entries.popitem(last=False)
            evicted.append(sid)
        self._evictions += len(evicted)
        return evicted

    def invalidate(self, subject_id: str) -> bool:
        """
        Drop the cached entry for subject_id.

        Returns:
            True if an entry was removed, False if nothing was cached.
        """
        with self._lock:
            removed = self._entries.pop(subject_id, None) is not None
            if removed:
                self._invalidations += 1
        logger.debug("score_cache_invalidated", subject_id=subject_id, removed=removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_sec": self.ttl_sec,
                "hits": self._hits,
                "misses": self._misses,
                "stale_serves": self._stale_serves,
                "invalidations": self._invalidations,
                "evictions": self._evictions,
            }
