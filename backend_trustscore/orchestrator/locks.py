"""
Per-subject lock table.

One threading.Lock per subject id, created on first use under a table lock
and dropped once no caller holds or waits on it.
Recomputation and violation application for a subject run under the same
lock; different subjects never contend.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class LockTimeout(Exception):
    """The subject lock was not acquired within the timeout."""

    def __init__(self, subject_id: str, timeout_sec: float) -> None:
        super().__init__(f"lock for {subject_id} not acquired within {timeout_sec}s")
        self.subject_id = subject_id
        self.timeout_sec = timeout_sec


class SubjectLockTable:
    """
    Locks keyed by subject id, created on demand.

    Each entry carries the number of callers holding or waiting on it and is
    removed when that count drops to zero, so the table only ever holds
    subjects with work in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}
        self._table_lock = threading.Lock()

    def _checkout(self, subject_id: str) -> threading.Lock:
        with self._table_lock:
            lock = self._locks.get(subject_id)
            if lock is None:
                lock = self._locks[subject_id] = threading.Lock()
            self._users[subject_id] = self._users.get(subject_id, 0) + 1
            return lock

    def _checkin(self, subject_id: str) -> None:
        with self._table_lock:
            remaining = self._users[subject_id] - 1
            if remaining:
                self._users[subject_id] = remaining
            else:
                del self._users[subject_id]
                del self._locks[subject_id]

    @contextmanager
    def acquire(self, subject_id: str, timeout_sec: float) -> Iterator[None]:
        """
        Hold the subject's lock for the duration of the block.

        Raises LockTimeout if it cannot be acquired within timeout_sec.
        """
        lock = self._checkout(subject_id)
        try:
            if not lock.acquire(timeout=max(0.0, timeout_sec)):
                raise LockTimeout(subject_id, timeout_sec)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(subject_id)

    def is_locked(self, subject_id: str) -> bool:
        with self._table_lock:
            lock = self._locks.get(subject_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._locks)
