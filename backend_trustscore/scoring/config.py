"""
Tunable scoring tables: weights, decay rates, caps, incentives, penalties.

Every number the pipeline uses lives here so environments can override it
without touching formulas. Defaults are the production values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from backend_trustscore.scoring.models import (
    RestrictionTier,
    ViolationCategory,
    ViolationSeverity,
)

# Component names (fixed evaluation/output order)
ACCOUNT_AGE = "account_age"
PROFILE_COMPLETENESS = "profile_completeness"
CONNECTED_ACCOUNTS = "connected_accounts"
COMMUNITY_ACTIVITY = "community_activity"
CONTENT_QUALITY = "content_quality"
SOCIAL_ENGAGEMENT = "social_engagement"
EVENTS_PARTICIPATION = "events_participation"
REVIEWS_RATINGS = "reviews_ratings"
PLATFORM_CONTRIBUTION = "platform_contribution"
POSITIVE_INTERACTIONS = "positive_interactions"
FLAGGING_ACCURACY = "flagging_accuracy"

COMPONENT_NAMES: tuple[str, ...] = (
    ACCOUNT_AGE,
    PROFILE_COMPLETENESS,
    CONNECTED_ACCOUNTS,
    COMMUNITY_ACTIVITY,
    CONTENT_QUALITY,
    SOCIAL_ENGAGEMENT,
    EVENTS_PARTICIPATION,
    REVIEWS_RATINGS,
    PLATFORM_CONTRIBUTION,
    POSITIVE_INTERACTIONS,
    FLAGGING_ACCURACY,
)

NEUTRAL_SCORE = 50.0

DEFAULT_WEIGHTS: dict[str, float] = {
    ACCOUNT_AGE: 0.15,
    PROFILE_COMPLETENESS: 0.12,
    EVENTS_PARTICIPATION: 0.18,
    COMMUNITY_ACTIVITY: 0.10,
    SOCIAL_ENGAGEMENT: 0.08,
    REVIEWS_RATINGS: 0.07,
    CONTENT_QUALITY: 0.06,
    PLATFORM_CONTRIBUTION: 0.05,
    CONNECTED_ACCOUNTS: 0.08,
    POSITIVE_INTERACTIONS: 0.06,
    FLAGGING_ACCURACY: 0.05,
}

# Exponent rate per elapsed month in 0.99 ** (months * rate); 0 = never decays
DEFAULT_DECAY_RATES: dict[str, float] = {
    ACCOUNT_AGE: 0.0,
    PROFILE_COMPLETENESS: 0.0,
    REVIEWS_RATINGS: 0.0,
    CONNECTED_ACCOUNTS: 1.5,
    SOCIAL_ENGAGEMENT: 3.0,
    PLATFORM_CONTRIBUTION: 3.0,
    POSITIVE_INTERACTIONS: 3.0,
    COMMUNITY_ACTIVITY: 4.5,
    CONTENT_QUALITY: 4.5,
    FLAGGING_ACCURACY: 4.5,
    EVENTS_PARTICIPATION: 6.0,
}

DECAY_BASE = 0.99
DECAY_FLOOR_FRACTION = 0.30
SECONDS_PER_DAY = 86400
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY

# Score bounds
INTERNAL_CAP = 200
DISPLAY_CAP = 100
AGGREGATE_FLOOR = 30
PENALTY_FLOOR = 5
PROTECTION_DIVISOR = 5

# One-time achievements: key -> points
DEFAULT_ACHIEVEMENT_BONUSES: dict[str, int] = {
    "first_friend_connection": 15,
    "first_event_attendance": 20,
    "first_event_creation": 25,
    "first_social_account_link": 10,
    "profile_photo_upload": 8,
    "profile_bio_complete": 12,
    "first_helpful_post": 15,
    "first_accurate_flag": 10,
}


@dataclass(frozen=True)
class RewardCap:
    """Maximum continuous-reward points earnable per period; excess is discarded."""

    max_points: float
    period: str


DEFAULT_REWARD_CAPS: dict[str, RewardCap] = {
    "daily_login": RewardCap(10, "week"),
    "weekly_event_attendance": RewardCap(16, "week"),
    "quality_posts_weekly": RewardCap(24, "week"),
    "helpful_interactions_daily": RewardCap(15, "week"),
    "social_engagement_daily": RewardCap(7, "week"),
    "new_friends_weekly": RewardCap(18, "week"),
    "event_hosting_monthly": RewardCap(60, "month"),
    "community_contributions_weekly": RewardCap(20, "week"),
}


@dataclass(frozen=True)
class StreakRule:
    """
    Streak bonus rule: floor(min(length, cap) * 2 * multiplier) once length >= threshold.

    The multiplier steps up by step_bonus once length reaches
    step_factor * threshold.
    """

    threshold: int
    cap: int
    multiplier: float
    step_factor: int = 2
    step_bonus: float = 0.1

    def multiplier_for(self, length: int) -> float:
        if length >= self.threshold * self.step_factor:
            return round(self.multiplier + self.step_bonus, 4)
        return self.multiplier


DEFAULT_STREAK_RULES: dict[str, StreakRule] = {
    "daily_login": StreakRule(threshold=7, cap=12, multiplier=1.2),
    "weekly_event_attendance": StreakRule(threshold=4, cap=6, multiplier=1.3),
    "monthly_content_creation": StreakRule(threshold=3, cap=8, multiplier=1.25),
}

# (min internal score, tier name), highest first
DEFAULT_TIERS: tuple[tuple[int, str], ...] = (
    (150, "mythic"),
    (120, "legend"),
    (100, "champion"),
    (90, "elite"),
    (80, "leader"),
    (70, "trusted"),
    (60, "verified"),
)
BASE_TIER = "basic"


@dataclass(frozen=True)
class BenefitRule:
    threshold: int
    benefit: str
    description: str
    multiplier: float | None = None


DEFAULT_OVERFLOW_BENEFITS: tuple[BenefitRule, ...] = (
    BenefitRule(101, "score_protection", "Score protection against small drops"),
    BenefitRule(105, "earning_multiplier", "1.1x point earning multiplier", 1.1),
    BenefitRule(110, "priority_support", "Priority support and event notifications"),
    BenefitRule(115, "beta_access", "Beta feature early access"),
    BenefitRule(120, "exclusive_community", "Legend tier - exclusive community access"),
    BenefitRule(125, "earning_multiplier", "1.2x point earning multiplier", 1.2),
    BenefitRule(130, "mentor_status", "Verified mentor status"),
    BenefitRule(135, "feedback_council", "Platform feedback council invitation"),
    BenefitRule(140, "member_spotlight", "Featured member spotlight"),
    BenefitRule(150, "earning_multiplier", "1.3x point earning multiplier", 1.3),
)


@dataclass(frozen=True)
class PenaltyRule:
    points: int
    severity: ViolationSeverity
    category: ViolationCategory
    message: str


_S = ViolationSeverity
_C = ViolationCategory

DEFAULT_PENALTIES: dict[str, PenaltyRule] = {
    "flagged_post": PenaltyRule(-15, _S.MEDIUM, _C.CONTENT, "Post flagged by community"),
    "removed_post": PenaltyRule(-25, _S.HIGH, _C.CONTENT, "Post removed by moderators"),
    "false_information": PenaltyRule(-30, _S.HIGH, _C.CONTENT, "Spreading false information"),
    "spam_posting": PenaltyRule(-20, _S.MEDIUM, _C.CONTENT, "Spam or promotional abuse"),
    "flagged_comment": PenaltyRule(-8, _S.LOW, _C.INTERACTION, "Comment flagged by community"),
    "harassment_comment": PenaltyRule(-35, _S.CRITICAL, _C.INTERACTION, "Harassment or bullying"),
    "hate_speech": PenaltyRule(-50, _S.CRITICAL, _C.INTERACTION, "Hate speech violation"),
    "fake_review": PenaltyRule(-40, _S.HIGH, _C.TRUST, "Fake or manipulated review"),
    "sock_puppeting": PenaltyRule(-60, _S.CRITICAL, _C.TRUST, "Multiple fake accounts detected"),
    "no_show_event": PenaltyRule(-5, _S.LOW, _C.RELIABILITY, "No-show to confirmed event"),
    "disruptive_event": PenaltyRule(-25, _S.MEDIUM, _C.RELIABILITY, "Disruptive behavior at event"),
    "fake_event_creation": PenaltyRule(-45, _S.HIGH, _C.TRUST, "Creating fake or misleading events"),
    "false_flagging": PenaltyRule(-12, _S.MEDIUM, _C.TRUST, "False flagging detected"),
    "system_gaming": PenaltyRule(-75, _S.CRITICAL, _C.TRUST, "Attempting to game the trust system"),
}

REPEAT_OFFENDER_MULTIPLIER = 1.5
REPEAT_LOOKBACK_DAYS = 30

# Restriction flags
NO_EVENT_CREATION = "no_event_creation"
POST_APPROVAL_REQUIRED = "post_approval_required"
NO_POSTING = "no_posting"
NO_COMMENTS = "no_comments"
LIMITED_FLAGGING = "limited_flagging"
NO_FLAGGING = "no_flagging"
NO_FRIEND_REQUESTS = "no_friend_requests"
VIEW_ONLY = "view_only"
NO_INTERACTIONS = "no_interactions"


def _nested_tiers() -> tuple[RestrictionTier, ...]:
    """Build tiers top-down; each tier adds to the restrictions of the one above."""
    steps: tuple[tuple[str, int | None, tuple[str, ...], str], ...] = (
        ("Full Access", None, (), "Full platform access"),
        ("Probation", 50, (), "Low trust score - be careful with your actions"),
        ("Limited Access", 40, (NO_EVENT_CREATION, POST_APPROVAL_REQUIRED),
         "Limited access - events and posts require approval"),
        ("Restricted User", 30, (NO_POSTING, NO_COMMENTS, LIMITED_FLAGGING),
         "Restricted - can only upvote, attend events, and view content"),
        ("Severe Restrictions", 20, (NO_FLAGGING, NO_FRIEND_REQUESTS),
         "Severe restrictions - minimal platform access"),
        ("Account Under Review", 10, (VIEW_ONLY, NO_INTERACTIONS),
         "Account under review - view-only access pending investigation"),
    )
    tiers: list[RestrictionTier] = []
    acc: set[str] = set()
    for name, ceiling, added, message in steps:
        acc |= set(added)
        tiers.append(RestrictionTier(name=name, ceiling=ceiling, restrictions=frozenset(acc), message=message))
    return tuple(tiers)


DEFAULT_RESTRICTION_TIERS: tuple[RestrictionTier, ...] = _nested_tiers()


@dataclass(frozen=True)
class RecoveryActionRule:
    action: str
    points: int
    cap: int
    description: str


DEFAULT_RECOVERY_ACTIONS: tuple[RecoveryActionRule, ...] = (
    RecoveryActionRule("attend_events", 3, 5, "Attend community events to show positive engagement"),
    RecoveryActionRule("positive_reactions", 1, 10, "Upvote helpful content to contribute positively"),
    RecoveryActionRule("profile_improvements", 5, 2, "Complete profile sections and verify accounts"),
    RecoveryActionRule("social_connections", 2, 3, "Connect with verified, trusted community members"),
    RecoveryActionRule("time_based_recovery", 2, 4, "Maintain good behavior week over week"),
)

RECOVERY_THRESHOLD = 40
RECOVERY_TARGET = 50
WEEKLY_RECOVERY_RATE = 10


@dataclass
class ScoringConfig:
    """Every tunable the pipeline reads. Call validate() after overriding tables."""

    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    decay_rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_DECAY_RATES))
    neutral_score: float = NEUTRAL_SCORE
    decay_base: float = DECAY_BASE
    decay_floor_fraction: float = DECAY_FLOOR_FRACTION
    seconds_per_month: int = SECONDS_PER_MONTH
    internal_cap: int = INTERNAL_CAP
    display_cap: int = DISPLAY_CAP
    aggregate_floor: int = AGGREGATE_FLOOR
    penalty_floor: int = PENALTY_FLOOR
    protection_divisor: int = PROTECTION_DIVISOR
    achievement_bonuses: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ACHIEVEMENT_BONUSES))
    reward_caps: dict[str, RewardCap] = field(default_factory=lambda: dict(DEFAULT_REWARD_CAPS))
    streak_rules: dict[str, StreakRule] = field(default_factory=lambda: dict(DEFAULT_STREAK_RULES))
    tiers: tuple[tuple[int, str], ...] = DEFAULT_TIERS
    overflow_benefits: tuple[BenefitRule, ...] = DEFAULT_OVERFLOW_BENEFITS
    penalties: dict[str, PenaltyRule] = field(default_factory=lambda: dict(DEFAULT_PENALTIES))
    repeat_multiplier: float = REPEAT_OFFENDER_MULTIPLIER
    repeat_lookback_days: int = REPEAT_LOOKBACK_DAYS
    restriction_tiers: tuple[RestrictionTier, ...] = DEFAULT_RESTRICTION_TIERS
    recovery_actions: tuple[RecoveryActionRule, ...] = DEFAULT_RECOVERY_ACTIONS
    recovery_threshold: int = RECOVERY_THRESHOLD
    recovery_target: int = RECOVERY_TARGET
    weekly_recovery_rate: int = WEEKLY_RECOVERY_RATE

    def validate(self) -> ScoringConfig:
        """Raise ValueError on inconsistent tables; return self for chaining."""
        if set(self.weights) != set(COMPONENT_NAMES):
            missing = sorted(set(COMPONENT_NAMES) - set(self.weights))
            extra = sorted(set(self.weights) - set(COMPONENT_NAMES))
            raise ValueError(f"weights must cover exactly the components; missing={missing} extra={extra}")
        total = math.fsum(self.weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"weights must sum to 1.0, got {total}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("weights must be non-negative")
        if any(r < 0 for r in self.decay_rates.values()):
            raise ValueError("decay rates must be non-negative")
        if not 0 <= self.decay_floor_fraction <= 1:
            raise ValueError("decay_floor_fraction must be in [0, 1]")
        if not self.penalty_floor <= self.aggregate_floor <= self.display_cap <= self.internal_cap:
            raise ValueError("expected penalty_floor <= aggregate_floor <= display_cap <= internal_cap")
        if any(rule.points >= 0 for rule in self.penalties.values()):
            raise ValueError("penalty points must be negative")
        if self.protection_divisor <= 0:
            raise ValueError("protection_divisor must be positive")
        return self

    def lookback_seconds(self) -> int:
        return self.repeat_lookback_days * SECONDS_PER_DAY
