"""
Aggregator and overflow resolver.

Combines decayed component scores with weights into a base score, adds
incentive and streak bonuses, and resolves everything derived from the
internal score:

- display score (capped) and overflow points above the display cap
- tier (total order over internal score)
- overflow benefits (earning multipliers collapse to the highest one)
- score-protection buffer, floor(overflow / 5)
- restriction tier, permissions and recovery plan (from display score)

All functions are pure; results are new TrustScoreResult values.
"""

from __future__ import annotations

import dataclasses
import math
import time
from typing import Iterable, Sequence

from backend_trustscore.scoring import recovery
from backend_trustscore.scoring.config import BASE_TIER, COMPONENT_NAMES, ScoringConfig
from backend_trustscore.scoring.models import (
    ComponentScore,
    ImprovementSuggestion,
    Milestone,
    OverflowBenefit,
    TrustScoreResult,
)
from backend_trustscore.scoring.restrictions import resolve_permissions, resolve_restriction
from backend_trustscore.scoring.signals import SignalSnapshot
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

SUGGESTION_THRESHOLD = 60.0
MAX_SUGGESTIONS = 3

COMPONENT_DESCRIPTIONS: dict[str, tuple[str, str]] = {
    "account_age": ("How long the account has existed", "Your account will naturally improve over time"),
    "profile_completeness": ("Profile fields filled in", "Complete your profile - add photo, bio, and social links"),
    "connected_accounts": ("Linked and verified external accounts", "Link and verify your social media accounts"),
    "community_activity": ("Posts, comments and reactions", "Post more content and engage with others' posts"),
    "content_quality": ("Ratings and reports on your content", "Focus on creating high-quality, valuable posts"),
    "social_engagement": ("Friends, interactions and shares", "Connect with more friends and interact socially"),
    "events_participation": ("Events attended and hosted", "Attend more events and consider hosting your own"),
    "reviews_ratings": ("Reviews written and ratings received", "Write helpful reviews and maintain good ratings"),
    "platform_contribution": ("Reports, feedback and help given", "Submit accurate reports and provide helpful feedback"),
    "positive_interactions": ("Share of interactions that were positive", "Give helpful votes and positive feedback"),
    "flagging_accuracy": ("Share of flags upheld by moderators", "Only flag content that genuinely violates guidelines"),
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives and towards +inf for negatives."""
    return math.floor(value + 0.5)


def base_score(components: Iterable[ComponentScore], config: ScoringConfig) -> int:
    """
    Weighted sum of decayed component scores, rounded.

    Components missing from the input score the neutral baseline. Summed with
    math.fsum so evaluation order never changes the result.
    """
    by_name = {c.name: c.decayed for c in components}
    terms = [
        by_name.get(name, config.neutral_score) * config.weights.get(name, 0.0)
        for name in COMPONENT_NAMES
    ]
    return round_half_up(math.fsum(terms))


def incentive_bonus(snapshot: SignalSnapshot, config: ScoringConfig) -> int:
    """One-time achievements (each once) plus per-period rewards capped per reward type."""
    one_time = sum(
        points for key, points in config.achievement_bonuses.items() if key in snapshot.achievements
    )
    continuous = math.fsum(
        min(earned, config.reward_caps[key].max_points)
        for key, earned in snapshot.period_rewards.items()
        if key in config.reward_caps
    )
    return one_time + round_half_up(continuous)


def streak_bonus(snapshot: SignalSnapshot, config: ScoringConfig) -> int:
    total = 0
    for streak_type, rule in config.streak_rules.items():
        length = snapshot.streaks.get(streak_type, 0)
        if length < rule.threshold:
            continue
        # round() first so 12 * 2 * 1.3 never floors to 31 via float error
        raw = round(min(length, rule.cap) * 2 * rule.multiplier_for(length), 9)
        total += math.floor(raw)
    return total


def resolve_tier(internal_score: int, config: ScoringConfig) -> str:
    for minimum, name in sorted(config.tiers, reverse=True):
        if internal_score >= minimum:
            return name
    return BASE_TIER


def resolve_benefits(internal_score: int, config: ScoringConfig) -> tuple[tuple[OverflowBenefit, ...], float]:
    """
    Benefits unlocked at or below internal_score, ordered by threshold.

    Earning multipliers never stack: they collapse into one entry carrying
    the highest unlocked multiplier. Returns (benefits, earning_multiplier),
    the multiplier being 1.0 when none applies.
    """
    unlocked = sorted(
        (b for b in config.overflow_benefits if b.threshold <= internal_score),
        key=lambda b: b.threshold,
    )
    multipliers = [b for b in unlocked if b.multiplier is not None]
    best = max(multipliers, key=lambda b: b.multiplier) if multipliers else None
    benefits = tuple(
        OverflowBenefit(b.threshold, b.benefit, b.description, b.multiplier)
        for b in unlocked
        if b.multiplier is None or b is best
    )
    return benefits, (best.multiplier if best else 1.0)


def protection_buffer(overflow_points: int, config: ScoringConfig) -> int:
    return max(0, overflow_points) // config.protection_divisor


def next_milestone(internal_score: int, config: ScoringConfig) -> Milestone | None:
    """Next overflow-benefit threshold above internal_score; the internal cap after the last one."""
    for rule in sorted(config.overflow_benefits, key=lambda b: b.threshold):
        if rule.threshold > internal_score:
            return Milestone(rule.threshold, rule.threshold - internal_score, rule.description)
    if internal_score < config.internal_cap:
        return Milestone(config.internal_cap, config.internal_cap - internal_score, "Maximum trust level achieved")
    return None


def improvement_suggestions(components: Sequence[ComponentScore]) -> tuple[ImprovementSuggestion, ...]:
    """The weakest components scoring below 60, lowest first (ties by name)."""
    weak = sorted(
        (c for c in components if c.decayed < SUGGESTION_THRESHOLD),
        key=lambda c: (c.decayed, c.name),
    )
    out = []
    for c in weak[:MAX_SUGGESTIONS]:
        description, suggestion = COMPONENT_DESCRIPTIONS.get(c.name, (c.name, "Continue positive engagement"))
        out.append(ImprovementSuggestion(c.name, c.decayed, description, suggestion))
    return tuple(out)


def _derived(internal_score: int, config: ScoringConfig) -> dict:
    """Every field that is a pure function of internal score."""
    display = min(config.display_cap, internal_score)
    benefits, multiplier = resolve_benefits(internal_score, config)
    restriction = resolve_restriction(display, config.restriction_tiers)
    return {
        "internal_score": internal_score,
        "display_score": display,
        "overflow_points": max(0, internal_score - config.display_cap),
        "tier": resolve_tier(internal_score, config),
        "active_benefits": benefits,
        "earning_multiplier": multiplier,
        "restriction": restriction,
        "permissions": resolve_permissions(restriction),
        "recovery_plan": recovery.plan(display, config),
        "next_milestone": next_milestone(internal_score, config),
    }


def with_internal_score(
    result: TrustScoreResult,
    internal_score: int,
    protection: int | None = None,
    config: ScoringConfig | None = None,
) -> TrustScoreResult:
    """
    Re-resolve a result for a new internal score.

    protection: Remaining protection buffer; recomputed from overflow when None.
    """
    config = config or ScoringConfig()
    fields = _derived(internal_score, config)
    if protection is None:
        protection = protection_buffer(fields["overflow_points"], config)
    return dataclasses.replace(result, protection_buffer=protection, **fields)


def aggregate(
    components: Sequence[ComponentScore],
    snapshot: SignalSnapshot,
    config: ScoringConfig | None = None,
    now_ts: int | None = None,
) -> TrustScoreResult:
    """
    Compose a TrustScoreResult from component scores and the snapshot's incentives.

    internal = clamp(base + incentive + streak, aggregate_floor, internal_cap)
    """
    config = config or ScoringConfig()
    now_ts = now_ts if now_ts is not None else int(time.time())
    base = base_score(components, config)
    incentive = incentive_bonus(snapshot, config)
    streak = streak_bonus(snapshot, config)
    internal = max(config.aggregate_floor, min(config.internal_cap, base + incentive + streak))
    fields = _derived(internal, config)
    result = TrustScoreResult(
        subject_id=snapshot.subject_id,
        base_score=base,
        incentive_bonus=incentive,
        streak_bonus=streak,
        protection_buffer=protection_buffer(fields["overflow_points"], config),
        components=tuple(components),
        improvement_suggestions=improvement_suggestions(components),
        computed_at=now_ts,
        **fields,
    )
    logger.debug(
        "score_aggregated",
        subject_id=snapshot.subject_id,
        base_score=base,
        incentive_bonus=incentive,
        streak_bonus=streak,
        internal_score=internal,
        tier=result.tier,
    )
    return result
