"""
Signal snapshot: the read-only behavioural input for one subject.

Produced by the external activity aggregation layer (friend graph, posts and
events store, verification records). The engine never mutates it. Every
field has a default so a zeroed snapshot is valid; values are validated at
construction so malformed input is rejected before any scoring happens.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping

from backend_trustscore.scoring.config import COMPONENT_NAMES
from backend_trustscore.scoring.errors import InvalidSignalError

PROFILE_FIELDS: tuple[str, ...] = (
    "has_avatar",
    "has_bio",
    "has_location",
    "has_interests",
    "has_website",
    "has_occupation",
    "has_social_links",
)

_BOOL_FIELDS = PROFILE_FIELDS + ("phone_verified", "email_verified")

_COUNT_FIELDS: tuple[str, ...] = (
    "events_attended",
    "events_hosted",
    "event_no_shows",
    "posts_count",
    "comments_count",
    "reactions_given",
    "content_upvotes",
    "content_reports",
    "friends_count",
    "social_interactions",
    "shares_count",
    "reviews_given",
    "helpful_review_votes",
    "accurate_reports",
    "feedback_submitted",
    "helped_users",
    "positive_interactions",
    "total_interactions",
    "flags_submitted",
    "accurate_flags",
    "connected_accounts",
    "verified_accounts",
)

_RATING_FIELDS = ("average_content_rating", "average_rating_received")
RATING_MIN = 1.0
RATING_MAX = 5.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class SignalSnapshot:
    """
    Per-subject activity counters at one point in time.

    Ratings are on a 1-5 scale; None means "no ratings yet" and scores as neutral.
    achievements: One-time achievement keys already earned.
    period_rewards: Continuous-reward points earned in the current period, by reward type.
    streaks: Current streak lengths, by streak type.
    last_activity: Unix seconds of the last activity feeding each component.
    """

    subject_id: str
    account_age_days: float = 0.0

    has_avatar: bool = False
    has_bio: bool = False
    has_location: bool = False
    has_interests: bool = False
    has_website: bool = False
    has_occupation: bool = False
    has_social_links: bool = False
    phone_verified: bool = False
    email_verified: bool = False

    events_attended: int = 0
    events_hosted: int = 0
    event_no_shows: int = 0

    posts_count: int = 0
    comments_count: int = 0
    reactions_given: int = 0

    average_content_rating: float | None = None
    content_upvotes: int = 0
    content_reports: int = 0

    friends_count: int = 0
    social_interactions: int = 0
    shares_count: int = 0

    reviews_given: int = 0
    helpful_review_votes: int = 0
    average_rating_received: float | None = None

    accurate_reports: int = 0
    feedback_submitted: int = 0
    helped_users: int = 0

    positive_interactions: int = 0
    total_interactions: int = 0

    flags_submitted: int = 0
    accurate_flags: int = 0

    connected_accounts: int = 0
    verified_accounts: int = 0

    achievements: frozenset[str] = field(default_factory=frozenset)
    period_rewards: Mapping[str, float] = field(default_factory=dict)
    streaks: Mapping[str, int] = field(default_factory=dict)
    last_activity: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.subject_id, str) or not self.subject_id.strip():
            raise InvalidSignalError("subject_id", "must be a non-empty string")
        if not _is_number(self.account_age_days) or self.account_age_days < 0:
            raise InvalidSignalError("account_age_days", "must be a non-negative number")
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                raise InvalidSignalError(name, "must be a boolean")
        for name in _COUNT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidSignalError(name, "must be a non-negative integer")
        for name in _RATING_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if not _is_number(value) or not RATING_MIN <= value <= RATING_MAX:
                raise InvalidSignalError(name, f"must be between {RATING_MIN:g} and {RATING_MAX:g}")
        if self.accurate_flags > self.flags_submitted:
            raise InvalidSignalError("accurate_flags", "cannot exceed flags_submitted")
        if self.positive_interactions > self.total_interactions:
            raise InvalidSignalError("positive_interactions", "cannot exceed total_interactions")

        object.__setattr__(self, "achievements", self._validated_achievements(self.achievements))
        object.__setattr__(self, "period_rewards", self._validated_mapping(
            "period_rewards", self.period_rewards, integral=False))
        object.__setattr__(self, "streaks", self._validated_mapping(
            "streaks", self.streaks, integral=True))
        object.__setattr__(self, "last_activity", self._validated_last_activity(self.last_activity))

    @staticmethod
    def _validated_achievements(value: Any) -> frozenset[str]:
        if isinstance(value, str) or not hasattr(value, "__iter__"):
            raise InvalidSignalError("achievements", "must be a collection of strings")
        items = list(value)
        if not all(isinstance(a, str) for a in items):
            raise InvalidSignalError("achievements", "must be a collection of strings")
        return frozenset(items)

    @staticmethod
    def _validated_mapping(name: str, value: Any, *, integral: bool) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise InvalidSignalError(name, "must be a mapping")
        out: dict[str, Any] = {}
        for key, v in value.items():
            if not isinstance(key, str):
                raise InvalidSignalError(name, "keys must be strings")
            if integral:
                ok = isinstance(v, int) and not isinstance(v, bool) and v >= 0
            else:
                ok = _is_number(v) and v >= 0
            if not ok:
                kind = "non-negative integers" if integral else "non-negative numbers"
                raise InvalidSignalError(f"{name}.{key}", f"values must be {kind}")
            out[key] = v
        return MappingProxyType(out)

    @staticmethod
    def _validated_last_activity(value: Any) -> Mapping[str, int]:
        if not isinstance(value, Mapping):
            raise InvalidSignalError("last_activity", "must be a mapping")
        out: dict[str, int] = {}
        for key, ts in value.items():
            if key not in COMPONENT_NAMES:
                raise InvalidSignalError(f"last_activity.{key}", "unknown component")
            if not _is_number(ts):
                raise InvalidSignalError(f"last_activity.{key}", "must be a unix timestamp")
            out[key] = int(ts)
        return MappingProxyType(out)

    @property
    def profile_fields_filled(self) -> int:
        return sum(1 for name in PROFILE_FIELDS if getattr(self, name))

    @classmethod
    def zeroed(cls, subject_id: str) -> SignalSnapshot:
        """Snapshot for a valid subject with no recorded activity."""
        return cls(subject_id=subject_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], subject_id: str | None = None) -> SignalSnapshot:
        """
        Build a snapshot from a loosely-typed payload (JSON, DB row).

        Unknown keys are rejected so a renamed upstream field cannot silently
        score as zero. Missing keys take their defaults.
        """
        if not isinstance(data, Mapping):
            raise InvalidSignalError("snapshot", "must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            raise InvalidSignalError(unknown[0], "unknown snapshot field")
        kwargs = dict(data)
        if subject_id is not None:
            kwargs["subject_id"] = subject_id
        if "subject_id" not in kwargs:
            raise InvalidSignalError("subject_id", "is required")
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, frozenset):
                value = sorted(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            out[f.name] = value
        return out
