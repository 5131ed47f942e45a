"""
Tests for the penalty engine: catalogue, repeat escalation, protection buffer,
penalty floor, replay and violation pattern analysis.
"""

from __future__ import annotations

import pytest

NOW_TS = 1_750_000_000
DAY = 86400


def _record(violation_type, timestamp, points=None):
    from backend_trustscore.scoring.config import DEFAULT_PENALTIES
    from backend_trustscore.scoring.models import ViolationRecord, ViolationSeverity

    rule = DEFAULT_PENALTIES[violation_type]
    return ViolationRecord(
        violation_type=violation_type,
        severity=rule.severity,
        category=rule.category,
        base_points=rule.points,
        points=rule.points if points is None else points,
        timestamp=timestamp,
        repeat_offense=False,
        appealable=rule.severity != ViolationSeverity.CRITICAL,
    )


def test_normalize_violation_type():
    """camelCase aliases map to catalogue keys."""
    from backend_trustscore.scoring.penalties import normalize_violation_type

    assert normalize_violation_type("hateSpeech") == "hate_speech"
    assert normalize_violation_type("falseFlagging") == "false_flagging"
    assert normalize_violation_type("no_show_event") == "no_show_event"


def test_unknown_violation_rejected(zero_result, config):
    """Unknown type raises UnknownViolationError (a ValueError) before anything is computed."""
    from backend_trustscore.scoring.errors import InvalidInputError, UnknownViolationError
    from backend_trustscore.scoring.penalties import apply_penalty

    with pytest.raises(UnknownViolationError) as exc_info:
        apply_penalty(zero_result, "jaywalking", config=config, now_ts=NOW_TS)
    assert isinstance(exc_info.value, InvalidInputError)
    assert isinstance(exc_info.value, ValueError)


def test_first_violation_applies_base_points(zero_result, config):
    """flagged_post from 50 -> 35, appealable, not a repeat."""
    from backend_trustscore.scoring.penalties import apply_penalty

    record, result = apply_penalty(zero_result, "flagged_post", {"post_id": "p1"}, (), config, NOW_TS)
    assert record.points == -15
    assert record.repeat_offense is False
    assert record.appealable is True
    assert record.context == {"post_id": "p1"}
    assert result.internal_score == 35
    assert result.display_score == 35
    assert result.restriction.name == "Limited Access"
    assert result.recovery_plan is not None
    # input result untouched
    assert zero_result.internal_score == 50


def test_hate_speech_twice_example(zero_result, config):
    """Second hateSpeech within 30 days uses 1.5x (-75); restrictions include posting and comment bans."""
    from backend_trustscore.scoring.penalties import apply_penalty

    first, r1 = apply_penalty(zero_result, "hateSpeech", None, (), config, NOW_TS)
    assert first.points == -50
    assert first.appealable is False
    second, r2 = apply_penalty(r1, "hateSpeech", None, (first,), config, NOW_TS + 10 * DAY)
    assert second.repeat_offense is True
    assert second.points == -75
    assert r2.display_score < 30
    assert {"no_event_creation", "no_posting", "no_comments"} <= r2.restriction.restrictions


@pytest.mark.parametrize("days_ago,repeat", [(0, True), (29, True), (30, True), (31, False), (90, False)])
def test_repeat_lookback_window(zero_result, config, days_ago, repeat):
    """Repeat multiplier applies iff a same-type record is at most 30 days old."""
    from backend_trustscore.scoring.penalties import apply_penalty

    history = (_record("spam_posting", NOW_TS - days_ago * DAY),)
    record, _ = apply_penalty(zero_result, "spam_posting", None, history, config, NOW_TS)
    assert record.repeat_offense is repeat
    assert record.points == (-30 if repeat else -20)


def test_repeat_needs_same_type(zero_result, config):
    from backend_trustscore.scoring.penalties import apply_penalty

    history = (_record("flagged_post", NOW_TS - DAY),)
    record, _ = apply_penalty(zero_result, "spam_posting", None, history, config, NOW_TS)
    assert record.repeat_offense is False


def test_penalty_floor(zero_result, config):
    """Penalties never push the internal score below 5."""
    from backend_trustscore.scoring.penalties import apply_penalty

    _, r = apply_penalty(zero_result, "system_gaming", None, (), config, NOW_TS)
    assert r.internal_score == 5
    assert r.display_score == 5
    assert r.restriction.name == "Account Under Review"
    assert r.permissions.view_only is True
    assert not any([
        r.permissions.can_vote,
        r.permissions.can_attend_events,
        r.permissions.can_comment,
    ])


def test_protection_buffer_absorbs_and_only_shrinks(zero_result, config):
    """internal 150 (buffer 10): -15 absorbs 10 -> 145; the buffer never grows back."""
    from backend_trustscore.scoring.aggregator import with_internal_score
    from backend_trustscore.scoring.penalties import apply_penalty

    start = with_internal_score(zero_result, 150, config=config)
    assert start.protection_buffer == 10
    rec1, r1 = apply_penalty(start, "flagged_post", None, (), config, NOW_TS)
    assert r1.internal_score == 145
    assert r1.protection_buffer == 0
    _, r2 = apply_penalty(r1, "no_show_event", None, (rec1,), config, NOW_TS + 1)
    assert r2.internal_score == 140
    assert r2.protection_buffer == 0


def test_no_absorption_without_overflow(zero_result, config):
    from backend_trustscore.scoring.aggregator import with_internal_score
    from backend_trustscore.scoring.penalties import apply_penalty

    start = with_internal_score(zero_result, 100, config=config)
    assert start.overflow_points == 0
    _, r = apply_penalty(start, "flagged_comment", None, (), config, NOW_TS)
    assert r.internal_score == 92


def test_replay_is_idempotent(zero_result, config):
    """Replaying stored records reproduces sequential application, every time."""
    from backend_trustscore.scoring.penalties import apply_penalty, replay_violations

    rec1, r1 = apply_penalty(zero_result, "flagged_comment", None, (), config, NOW_TS)
    rec2, r2 = apply_penalty(r1, "flagged_comment", None, (rec1,), config, NOW_TS + DAY)
    assert rec2.points == -12

    once = replay_violations(zero_result, [rec2, rec1], config)
    twice = replay_violations(zero_result, [rec1, rec2], config)
    assert once.internal_score == twice.internal_score == r2.internal_score == 30
    assert once.restriction == r2.restriction


def test_detect_violation_patterns_and_risk():
    """Three critical violations this week: escalating, critical risk, suspension recommended."""
    from backend_trustscore.scoring.penalties import (
        detect_violation_patterns,
        recommended_moderator_action,
        risk_level,
    )

    history = [_record("hate_speech", NOW_TS - d * DAY) for d in (1, 2, 3)]
    patterns = detect_violation_patterns(history, NOW_TS)
    assert patterns["total_violations"] == 3
    assert patterns["weekly_violations"] == 3
    assert patterns["critical_violations"] == 3
    assert patterns["categories"] == {"interaction": 3}
    assert patterns["escalating"] is True
    assert patterns["frequent_offender"] is False
    assert patterns["diverse_violations"] is False
    assert risk_level(history, NOW_TS) == "critical"
    assert recommended_moderator_action(patterns)["action"] == "account_suspension"


def test_risk_levels_low_end():
    """No history is minimal; two month-old-ish violations are low."""
    from backend_trustscore.scoring.penalties import (
        detect_violation_patterns,
        recommended_moderator_action,
        risk_level,
    )

    assert risk_level([], NOW_TS) == "minimal"
    assert recommended_moderator_action(detect_violation_patterns([], NOW_TS))["action"] == "automated_handling"
    history = [_record("flagged_comment", NOW_TS - 10 * DAY), _record("no_show_event", NOW_TS - 20 * DAY)]
    assert risk_level(history, NOW_TS) == "low"
