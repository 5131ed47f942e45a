"""
Recovery planner: a bounded, time-estimated path back to full access.

Triggered for display scores below the recovery threshold (40). Projects
hypothetical earnings from a fixed catalogue of recovery actions; never
touches score state. When the catalogue cannot cover the gap the plan is
still returned in full, with the shortfall stated.
"""

from __future__ import annotations

import math

from backend_trustscore.scoring.config import ScoringConfig
from backend_trustscore.scoring.models import RecoveryAction, RecoveryPlan

PRIORITY_ACTION_COUNT = 3

RECOVERY_TIPS: tuple[str, ...] = (
    "Focus on attending events - guaranteed positive points",
    "Engage positively with content through upvotes",
    "Connect with verified community members",
    "Avoid any actions that could trigger more penalties",
    "Be patient - recovery takes time but is achievable",
)

# (max weeks, label); falls through to "3+ months"
_TIMEFRAMES: tuple[tuple[int, str], ...] = (
    (2, "1-2 weeks"),
    (4, "2-4 weeks"),
    (8, "1-2 months"),
    (12, "2-3 months"),
)


def estimate_recovery_time(points_needed: int, weekly_rate: int) -> str:
    """Step function of weeks = ceil(points_needed / weekly_rate)."""
    weeks = math.ceil(max(0, points_needed) / weekly_rate)
    for max_weeks, label in _TIMEFRAMES:
        if weeks <= max_weeks:
            return label
    return "3+ months"


def catalogue(config: ScoringConfig) -> tuple[RecoveryAction, ...]:
    """Recovery actions, largest total first; ties broken by name so order never depends on config order."""
    actions = [
        RecoveryAction(action=r.action, points=r.points, cap=r.cap, description=r.description)
        for r in config.recovery_actions
    ]
    return tuple(sorted(actions, key=lambda a: (-a.total_possible, a.action)))


def plan(display_score: int, config: ScoringConfig | None = None) -> RecoveryPlan | None:
    """
    Build a recovery plan, or None when display_score is at or above the threshold.

    points_needed = target - display_score; max_possible_recovery is the sum
    of points * cap over the catalogue.
    """
    config = config or ScoringConfig()
    if display_score >= config.recovery_threshold:
        return None
    actions = catalogue(config)
    points_needed = config.recovery_target - display_score
    max_recovery = sum(a.total_possible for a in actions)
    return RecoveryPlan(
        current_score=display_score,
        target_score=config.recovery_target,
        points_needed=points_needed,
        max_possible_recovery=max_recovery,
        shortfall=max(0, points_needed - max_recovery),
        estimated_time=estimate_recovery_time(points_needed, config.weekly_recovery_rate),
        actions=actions,
        priority_actions=actions[:PRIORITY_ACTION_COUNT],
        tips=RECOVERY_TIPS,
    )
