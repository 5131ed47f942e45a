"""
Domain models for the scoring pipeline.

Component scores, the composed trust score result, violation records,
restriction tiers, permissions and recovery plans. Plain dataclasses with
to_dict() for JSON output; no ORM or framework coupling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ViolationSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ViolationCategory(str, Enum):
    CONTENT = "content"
    INTERACTION = "interaction"
    TRUST = "trust"
    RELIABILITY = "reliability"


@dataclass(frozen=True)
class ComponentScore:
    """
    One of the eleven weighted components.

    raw: Score from the component formula, in [0, 100].
    decayed: Score after temporal decay; never above raw, never below 30% of raw.
    weight: Share of the base score (weights sum to 1.0).
    decay_rate: Exponent rate per elapsed month; 0 for non-decaying components.
    """

    name: str
    raw: float
    decayed: float
    weight: float
    decay_rate: float = 0.0

    @property
    def weighted(self) -> float:
        return self.decayed * self.weight

    @property
    def decays(self) -> bool:
        return self.decay_rate > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "raw": round(self.raw, 2),
            "decayed": round(self.decayed, 2),
            "weight": self.weight,
            "decay_rate": self.decay_rate,
            "weighted": round(self.weighted, 2),
        }


@dataclass(frozen=True)
class OverflowBenefit:
    """Hidden benefit unlocked once internal score reaches threshold."""

    threshold: int
    benefit: str
    description: str
    multiplier: float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "threshold": self.threshold,
            "benefit": self.benefit,
            "description": self.description,
        }
        if self.multiplier is not None:
            out["multiplier"] = self.multiplier
        return out


@dataclass(frozen=True)
class RestrictionTier:
    """
    Bracket of display score with the capabilities it disables.

    ceiling: Highest display score in the bracket (inclusive); None for Full Access.
    """

    name: str
    ceiling: int | None
    restrictions: frozenset[str]
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ceiling": self.ceiling,
            "restrictions": sorted(self.restrictions),
            "message": self.message,
        }


@dataclass(frozen=True)
class Permissions:
    """Capability flags derived from the active restriction tier."""

    can_create_events: bool
    can_create_posts: bool
    can_comment: bool
    can_flag: bool
    can_send_friend_requests: bool
    can_vote: bool
    can_attend_events: bool
    view_only: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_create_events": self.can_create_events,
            "can_create_posts": self.can_create_posts,
            "can_comment": self.can_comment,
            "can_flag": self.can_flag,
            "can_send_friend_requests": self.can_send_friend_requests,
            "can_vote": self.can_vote,
            "can_attend_events": self.can_attend_events,
            "view_only": self.view_only,
        }


@dataclass(frozen=True)
class RecoveryAction:
    action: str
    points: int
    cap: int
    description: str

    @property
    def total_possible(self) -> int:
        return self.points * self.cap

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "points": self.points,
            "cap": self.cap,
            "total_possible": self.total_possible,
            "description": self.description,
        }


@dataclass(frozen=True)
class RecoveryPlan:
    """
    Projected path back to full access. Read-only: describes hypothetical
    earnings, never applied to a score.
    """

    current_score: int
    target_score: int
    points_needed: int
    max_possible_recovery: int
    shortfall: int
    estimated_time: str
    actions: tuple[RecoveryAction, ...]
    priority_actions: tuple[RecoveryAction, ...]
    tips: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_score": self.current_score,
            "target_score": self.target_score,
            "points_needed": self.points_needed,
            "max_possible_recovery": self.max_possible_recovery,
            "shortfall": self.shortfall,
            "estimated_time": self.estimated_time,
            "actions": [a.to_dict() for a in self.actions],
            "priority_actions": [a.to_dict() for a in self.priority_actions],
            "tips": list(self.tips),
        }


@dataclass(frozen=True)
class Milestone:
    target: int
    points_needed: int
    benefit: str

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target, "points_needed": self.points_needed, "benefit": self.benefit}


@dataclass(frozen=True)
class ImprovementSuggestion:
    component: str
    current_score: float
    description: str
    suggestion: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "current_score": round(self.current_score, 2),
            "description": self.description,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class ViolationRecord:
    """
    Append-only record of one applied violation.

    base_points: Catalogue delta before escalation (negative).
    points: Delta actually applied (after the repeat-offender multiplier).
    repeat_offense: True if a same-type record existed inside the lookback window.
    """

    violation_type: str
    severity: ViolationSeverity
    category: ViolationCategory
    base_points: int
    points: int
    timestamp: int
    repeat_offense: bool
    appealable: bool
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "violation_type": self.violation_type,
            "severity": self.severity.value,
            "category": self.category.value,
            "base_points": self.base_points,
            "points": self.points,
            "timestamp": self.timestamp,
            "repeat_offense": self.repeat_offense,
            "appealable": self.appealable,
            "context": dict(self.context),
        }


@dataclass(frozen=True)
class TrustScoreResult:
    """
    Composed output of one pipeline run for a subject.

    internal_score: Score used for tier and benefit resolution (may exceed display cap).
    display_score: Score shown to users, capped at the display cap.
    protection_buffer: Penalty points still absorbable by overflow; only ever shrinks under penalties.
    stale: True when served from cache after a lock timeout or source failure.
    warnings: Non-fatal problems (e.g. "persistence_failed").
    """

    subject_id: str
    base_score: int
    incentive_bonus: int
    streak_bonus: int
    internal_score: int
    display_score: int
    overflow_points: int
    tier: str
    active_benefits: tuple[OverflowBenefit, ...]
    earning_multiplier: float
    protection_buffer: int
    restriction: RestrictionTier
    permissions: Permissions
    recovery_plan: RecoveryPlan | None
    components: tuple[ComponentScore, ...]
    next_milestone: Milestone | None = None
    improvement_suggestions: tuple[ImprovementSuggestion, ...] = ()
    computed_at: int = 0
    stale: bool = False
    warnings: tuple[str, ...] = ()

    def component(self, name: str) -> ComponentScore | None:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "base_score": self.base_score,
            "incentive_bonus": self.incentive_bonus,
            "streak_bonus": self.streak_bonus,
            "internal_score": self.internal_score,
            "display_score": self.display_score,
            "overflow_points": self.overflow_points,
            "tier": self.tier,
            "active_benefits": [b.to_dict() for b in self.active_benefits],
            "earning_multiplier": self.earning_multiplier,
            "protection_buffer": self.protection_buffer,
            "restriction": self.restriction.to_dict(),
            "permissions": self.permissions.to_dict(),
            "recovery_plan": self.recovery_plan.to_dict() if self.recovery_plan else None,
            "components": [c.to_dict() for c in self.components],
            "next_milestone": self.next_milestone.to_dict() if self.next_milestone else None,
            "improvement_suggestions": [s.to_dict() for s in self.improvement_suggestions],
            "computed_at": self.computed_at,
            "stale": self.stale,
            "warnings": list(self.warnings),
        }
