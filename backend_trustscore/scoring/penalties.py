"""
Penalty engine: violations, repeat-offender escalation, score protection.

Responsibilities:
- Map a violation type to its catalogue rule (points, severity, category)
- Escalate repeats of the same type inside the lookback window (x1.5)
- Absorb part of a penalty from the overflow protection buffer
- Apply the penalty floor and re-resolve every derived field
- Replay stored violation deltas onto a freshly aggregated result
- Summarize violation history into patterns, a risk level and a moderator recommendation

Penalties never raise for a valid type; a violation is a successful
operation whose effect is a lower score.
"""

from __future__ import annotations

import re
import time
from collections import Counter
from typing import Any, Iterable, Sequence

from backend_trustscore.scoring.aggregator import round_half_up, with_internal_score
from backend_trustscore.scoring.config import SECONDS_PER_DAY, PenaltyRule, ScoringConfig
from backend_trustscore.scoring.errors import UnknownViolationError
from backend_trustscore.scoring.models import TrustScoreResult, ViolationRecord, ViolationSeverity
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Pattern thresholds over violation history
ESCALATING_WEEKLY_COUNT = 2
FREQUENT_MONTHLY_COUNT = 5
DIVERSE_CATEGORY_COUNT = 2

# Risk score weights and level boundaries (highest first)
_RISK_LEVELS: tuple[tuple[int, str], ...] = (
    (20, "critical"),
    (12, "high"),
    (6, "medium"),
    (2, "low"),
)


def normalize_violation_type(violation_type: str) -> str:
    """Accept both snake_case and camelCase names (hateSpeech -> hate_speech)."""
    if not isinstance(violation_type, str):
        raise UnknownViolationError(repr(violation_type))
    return _CAMEL_BOUNDARY.sub("_", violation_type.strip()).lower()


def penalty_rule(violation_type: str, config: ScoringConfig) -> tuple[str, PenaltyRule]:
    """Return (normalized type, rule); raise UnknownViolationError when not in the catalogue."""
    key = normalize_violation_type(violation_type)
    rule = config.penalties.get(key)
    if rule is None:
        raise UnknownViolationError(violation_type)
    return key, rule


def is_repeat(
    violation_type: str,
    history: Iterable[ViolationRecord],
    now_ts: int,
    config: ScoringConfig,
) -> bool:
    """True iff a same-type record is at most repeat_lookback_days old at now_ts."""
    window = config.lookback_seconds()
    return any(
        r.violation_type == violation_type and now_ts - r.timestamp <= window
        for r in history
    )


def apply_delta(result: TrustScoreResult, points: int, config: ScoringConfig) -> TrustScoreResult:
    """
    Apply a signed point delta to a result.

    Negative deltas are partly absorbed by the protection buffer while the
    result has overflow; the buffer only shrinks. The internal score never
    drops below the penalty floor.
    """
    absorbed = 0
    if points < 0 and result.overflow_points > 0:
        absorbed = min(result.protection_buffer, -points)
    internal = max(config.penalty_floor, min(config.internal_cap, result.internal_score + points + absorbed))
    overflow = max(0, internal - config.display_cap)
    remaining = min(result.protection_buffer - absorbed, overflow // config.protection_divisor)
    return with_internal_score(result, internal, max(0, remaining), config)


def apply_penalty(
    current: TrustScoreResult,
    violation_type: str,
    context: dict[str, Any] | None = None,
    history: Sequence[ViolationRecord] = (),
    config: ScoringConfig | None = None,
    now_ts: int | None = None,
) -> tuple[ViolationRecord, TrustScoreResult]:
    """
    Apply one violation to a score.

    Args:
        current: Result the penalty applies to (already includes earlier violations).
        violation_type: Catalogue key, snake_case or camelCase.
        context: Free-form moderation context stored on the record.
        history: Earlier violation records for this subject, for repeat detection.
        config: Scoring tables; defaults when None.
        now_ts: Time of the violation (unix seconds); current time when None.

    Returns:
        (ViolationRecord, new TrustScoreResult). Raises UnknownViolationError
        before anything is computed when the type is not in the catalogue.
    """
    config = config or ScoringConfig()
    key, rule = penalty_rule(violation_type, config)
    now_ts = now_ts if now_ts is not None else int(time.time())

    repeat = is_repeat(key, history, now_ts, config)
    points = round_half_up(rule.points * config.repeat_multiplier) if repeat else rule.points
    record = ViolationRecord(
        violation_type=key,
        severity=rule.severity,
        category=rule.category,
        base_points=rule.points,
        points=points,
        timestamp=now_ts,
        repeat_offense=repeat,
        appealable=rule.severity != ViolationSeverity.CRITICAL,
        context=dict(context or {}),
    )
    updated = apply_delta(current, points, config)
    logger.info(
        "violation_applied",
        subject_id=current.subject_id,
        violation_type=key,
        points=points,
        repeat_offense=repeat,
        internal_before=current.internal_score,
        internal_after=updated.internal_score,
        restriction=updated.restriction.name,
    )
    return record, updated


def replay_violations(
    result: TrustScoreResult,
    records: Iterable[ViolationRecord],
    config: ScoringConfig | None = None,
) -> TrustScoreResult:
    """
    Re-apply stored violation deltas in timestamp order.

    Uses each record's applied points, so escalation decided at violation
    time is preserved and replaying the same ledger is idempotent.
    """
    config = config or ScoringConfig()
    for record in sorted(records, key=lambda r: r.timestamp):
        result = apply_delta(result, record.points, config)
    return result


def detect_violation_patterns(history: Sequence[ViolationRecord], now_ts: int | None = None) -> dict[str, Any]:
    """
    Summarize a subject's violation history.

    Returns total, 30-day and 7-day counts, critical count, per-category
    counts and the escalating / frequent_offender / diverse_violations flags.
    """
    now_ts = now_ts if now_ts is not None else int(time.time())
    last_30 = [r for r in history if now_ts - r.timestamp <= 30 * SECONDS_PER_DAY]
    last_7 = [r for r in history if now_ts - r.timestamp <= 7 * SECONDS_PER_DAY]
    categories = Counter(r.category.value for r in history)
    return {
        "total_violations": len(history),
        "recent_violations": len(last_30),
        "weekly_violations": len(last_7),
        "critical_violations": sum(1 for r in history if r.severity == ViolationSeverity.CRITICAL),
        "categories": dict(sorted(categories.items())),
        "escalating": len(last_7) > ESCALATING_WEEKLY_COUNT,
        "frequent_offender": len(last_30) > FREQUENT_MONTHLY_COUNT,
        "diverse_violations": len(categories) > DIVERSE_CATEGORY_COUNT,
    }


def risk_score(patterns: dict[str, Any]) -> int:
    score = 3 * patterns["weekly_violations"] + patterns["recent_violations"]
    score += 5 * patterns["critical_violations"]
    if patterns["escalating"]:
        score += 5
    if patterns["frequent_offender"]:
        score += 8
    if patterns["diverse_violations"]:
        score += 3
    return score


def risk_level(history: Sequence[ViolationRecord], now_ts: int | None = None) -> str:
    """minimal / low / medium / high / critical."""
    score = risk_score(detect_violation_patterns(history, now_ts))
    for minimum, level in _RISK_LEVELS:
        if score >= minimum:
            return level
    return "minimal"


def recommended_moderator_action(patterns: dict[str, Any]) -> dict[str, str]:
    if patterns["critical_violations"] > 2:
        return {
            "action": "account_suspension",
            "duration": "7 days",
            "reason": "Multiple critical violations detected",
        }
    if patterns["escalating"] and patterns["weekly_violations"] > 3:
        return {
            "action": "manual_review",
            "priority": "high",
            "reason": "Escalating violation pattern requires intervention",
        }
    if patterns["frequent_offender"]:
        return {
            "action": "enhanced_monitoring",
            "duration": "30 days",
            "reason": "Frequent violations require closer oversight",
        }
    return {"action": "automated_handling", "reason": "Violations within normal parameters"}


def violation_summary(history: Sequence[ViolationRecord], now_ts: int | None = None) -> dict[str, Any]:
    """Patterns, risk level and moderator recommendation in one payload."""
    now_ts = now_ts if now_ts is not None else int(time.time())
    patterns = detect_violation_patterns(history, now_ts)
    return {
        "patterns": patterns,
        "risk_level": risk_level(history, now_ts),
        "recommended_action": recommended_moderator_action(patterns),
    }
