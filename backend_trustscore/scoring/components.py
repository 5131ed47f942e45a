"""
Component score calculator: eleven normalized scores from a signal snapshot.

Each component is a pure, total formula over snapshot fields, clamped to
[0, 100]. A subject with no recorded activity scores the neutral baseline
(50) on every component. Decaying components then lose weight with time
since their last activity:

    decayed = max(floor * raw, raw * 0.99 ** (months_elapsed * rate))

Months are measured from the component's last-activity timestamp and
floored at zero, so future timestamps never increase decay. No timestamp
means no decay. Deterministic; no ML.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable

from backend_trustscore.scoring import config as cfg
from backend_trustscore.scoring.config import ScoringConfig
from backend_trustscore.scoring.models import ComponentScore
from backend_trustscore.scoring.signals import PROFILE_FIELDS, SignalSnapshot
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Depreciation warnings: points lost before warning, and before "high" urgency
WARN_LOST_POINTS = 5.0
WARN_HIGH_URGENCY_POINTS = 15.0


def clamp(value: float, lo: float = SCORE_MIN, hi: float = SCORE_MAX) -> float:
    return max(lo, min(hi, value))


def _account_age(s: SignalSnapshot, n: float) -> float:
    # Saturating: half the headroom at ~253 days, ~95% at three years
    return n + 50.0 * (1.0 - math.exp(-s.account_age_days / 365.0))


def _profile_completeness(s: SignalSnapshot, n: float) -> float:
    return n + 50.0 * s.profile_fields_filled / len(PROFILE_FIELDS)


def _connected_accounts(s: SignalSnapshot, n: float) -> float:
    return (
        n
        + 6.0 * s.connected_accounts
        + 10.0 * s.verified_accounts
        + (5.0 if s.phone_verified else 0.0)
        + (5.0 if s.email_verified else 0.0)
    )


def _community_activity(s: SignalSnapshot, n: float) -> float:
    volume = 2.0 * s.posts_count + 0.5 * s.comments_count + 0.1 * s.reactions_given
    return n + 10.0 * math.log1p(volume)


def _content_quality(s: SignalSnapshot, n: float) -> float:
    rating = s.average_content_rating if s.average_content_rating is not None else 3.0
    report_penalty = min(50.0, 10.0 * s.content_reports)
    return n + 20.0 * (rating - 3.0) + 0.5 * s.content_upvotes - report_penalty


def _social_engagement(s: SignalSnapshot, n: float) -> float:
    return n + 1.5 * s.friends_count + 0.2 * s.social_interactions + 1.0 * s.shares_count


def _events_participation(s: SignalSnapshot, n: float) -> float:
    scheduled = s.events_attended + s.event_no_shows
    no_show_ratio = s.event_no_shows / max(1, scheduled)
    earned = (3.0 * s.events_attended + 8.0 * s.events_hosted) * (1.0 - no_show_ratio)
    return n + earned - 30.0 * no_show_ratio


def _reviews_ratings(s: SignalSnapshot, n: float) -> float:
    received = s.average_rating_received if s.average_rating_received is not None else 3.0
    volume = min(25.0, 2.5 * s.reviews_given)
    return n + volume + 12.5 * (received - 3.0) + 1.0 * s.helpful_review_votes


def _platform_contribution(s: SignalSnapshot, n: float) -> float:
    return n + 4.0 * s.accurate_reports + 1.5 * s.feedback_submitted + 2.5 * s.helped_users


def _positive_interactions(s: SignalSnapshot, n: float) -> float:
    if s.total_interactions == 0:
        return n
    return 100.0 * s.positive_interactions / s.total_interactions


def _flagging_accuracy(s: SignalSnapshot, n: float) -> float:
    if s.flags_submitted == 0:
        return n
    return 100.0 * s.accurate_flags / s.flags_submitted


FORMULAS: dict[str, Callable[[SignalSnapshot, float], float]] = {
    cfg.ACCOUNT_AGE: _account_age,
    cfg.PROFILE_COMPLETENESS: _profile_completeness,
    cfg.CONNECTED_ACCOUNTS: _connected_accounts,
    cfg.COMMUNITY_ACTIVITY: _community_activity,
    cfg.CONTENT_QUALITY: _content_quality,
    cfg.SOCIAL_ENGAGEMENT: _social_engagement,
    cfg.EVENTS_PARTICIPATION: _events_participation,
    cfg.REVIEWS_RATINGS: _reviews_ratings,
    cfg.PLATFORM_CONTRIBUTION: _platform_contribution,
    cfg.POSITIVE_INTERACTIONS: _positive_interactions,
    cfg.FLAGGING_ACCURACY: _flagging_accuracy,
}


def months_elapsed(last_activity_ts: int | None, now_ts: int, seconds_per_month: int) -> float:
    """Months since last activity; 0 for missing or future timestamps."""
    if last_activity_ts is None:
        return 0.0
    return max(0, now_ts - last_activity_ts) / seconds_per_month


def apply_decay(raw: float, months: float, rate: float, config: ScoringConfig) -> float:
    """
    Decay raw by elapsed months. Monotone non-increasing in months; never
    removes more than (1 - floor fraction) of raw.
    """
    if rate <= 0 or months <= 0:
        return raw
    factor = config.decay_base ** (months * rate)
    return max(config.decay_floor_fraction * raw, raw * factor)


def compute_component(
    name: str,
    snapshot: SignalSnapshot,
    config: ScoringConfig,
    now_ts: int,
) -> ComponentScore:
    formula = FORMULAS[name]
    raw = clamp(formula(snapshot, config.neutral_score))
    rate = config.decay_rates.get(name, 0.0)
    months = months_elapsed(snapshot.last_activity.get(name), now_ts, config.seconds_per_month)
    decayed = clamp(apply_decay(raw, months, rate, config), SCORE_MIN, raw)
    return ComponentScore(
        name=name,
        raw=raw,
        decayed=decayed,
        weight=config.weights.get(name, 0.0),
        decay_rate=rate,
    )


def compute_components(
    snapshot: SignalSnapshot,
    config: ScoringConfig | None = None,
    now_ts: int | None = None,
) -> list[ComponentScore]:
    """
    Compute all eleven component scores (raw and decayed) for a snapshot.

    Args:
        snapshot: Validated signal snapshot.
        config: Scoring tables; defaults when None.
        now_ts: Reference time for decay (unix seconds); current time when None.

    Returns:
        Component scores in the fixed COMPONENT_NAMES order.
    """
    config = config or ScoringConfig()
    now_ts = now_ts if now_ts is not None else int(time.time())
    components = [compute_component(name, snapshot, config, now_ts) for name in cfg.COMPONENT_NAMES]
    logger.debug(
        "components_computed",
        subject_id=snapshot.subject_id,
        decayed={c.name: round(c.decayed, 2) for c in components},
    )
    return components


_RECOVERY_HINTS: dict[str, tuple[str, float]] = {
    cfg.CONNECTED_ACCOUNTS: ("Reconnect and verify linked accounts", 15.0),
    cfg.COMMUNITY_ACTIVITY: ("Post, comment and join discussions regularly", 20.0),
    cfg.CONTENT_QUALITY: ("Create detailed, helpful posts and reviews", 15.0),
    cfg.SOCIAL_ENGAGEMENT: ("Interact with friends and make new connections", 12.0),
    cfg.EVENTS_PARTICIPATION: ("Attend upcoming community events", 25.0),
    cfg.PLATFORM_CONTRIBUTION: ("Help newcomers and submit useful feedback", 10.0),
}


def depreciation_warnings(components: list[ComponentScore] | tuple[ComponentScore, ...]) -> list[dict[str, Any]]:
    """
    Warn about decaying components that have lost noticeable points.

    Returns one dict per component with lost_points > 5: component,
    lost_points, urgency (high above 15 lost, else medium), suggestion and
    recoverable points (lost points capped per component).
    """
    warnings: list[dict[str, Any]] = []
    for c in components:
        if not c.decays:
            continue
        lost = c.raw - c.decayed
        if lost <= WARN_LOST_POINTS:
            continue
        hint, cap = _RECOVERY_HINTS.get(c.name, ("Stay engaged to prevent further decay", 10.0))
        warnings.append({
            "component": c.name,
            "lost_points": round(lost, 2),
            "urgency": "high" if lost > WARN_HIGH_URGENCY_POINTS else "medium",
            "suggestion": hint,
            "recoverable_points": round(min(cap, lost), 2),
        })
    return warnings
