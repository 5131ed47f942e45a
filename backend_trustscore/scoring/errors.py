"""
Error taxonomy for the trust score engine.

INVALID INPUT (non-retryable): unknown violation type, malformed snapshot
field. Raised before any state changes.

UNAVAILABLE DEPENDENCY (retryable): snapshot source unreachable with no
cached score to fall back on, or no score at all after a lock timeout.

Violations are not errors; applying one is a successful operation.
"""

from __future__ import annotations


class TrustScoreError(Exception):
    """Base class for all engine errors."""

    retryable: bool = False


class InvalidInputError(TrustScoreError, ValueError):
    """Caller supplied something the engine cannot interpret."""


class InvalidSignalError(InvalidInputError):
    """A signal snapshot field is missing its type, out of range, or unknown."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"invalid signal field {field!r}: {reason}")
        self.field = field
        self.reason = reason


class UnknownViolationError(InvalidInputError):
    """Violation type is not in the penalty catalogue."""

    def __init__(self, violation_type: str) -> None:
        super().__init__(f"unknown violation type: {violation_type!r}")
        self.violation_type = violation_type


class DependencyUnavailableError(TrustScoreError):
    """A collaborator failed and there is no degraded answer to give."""

    retryable = True


class SignalSourceUnavailableError(DependencyUnavailableError):
    """Snapshot fetch failed and nothing is cached for the subject."""

    def __init__(self, subject_id: str, cause: str) -> None:
        super().__init__(f"signal source unavailable for {subject_id}: {cause}")
        self.subject_id = subject_id


class ScoreUnavailableError(DependencyUnavailableError):
    """Lock wait timed out and there is no cached score to serve."""

    def __init__(self, subject_id: str, waited_sec: float) -> None:
        super().__init__(
            f"score for {subject_id} is being computed; no cached value after {waited_sec:.1f}s"
        )
        self.subject_id = subject_id
        self.waited_sec = waited_sec


class ViolationStoreUnavailableError(DependencyUnavailableError):
    """Violation history could not be loaded, so penalties cannot be replayed."""

    def __init__(self, subject_id: str, cause: str) -> None:
        super().__init__(f"violation store unavailable for {subject_id}: {cause}")
        self.subject_id = subject_id
