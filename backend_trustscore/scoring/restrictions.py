"""
Progressive access restrictions and permission resolution.

Restriction tiers are ordered brackets over the display score. A score at or
below a tier's ceiling falls in that tier; above every ceiling is Full
Access. Lower tiers carry every restriction of the tiers above them, so
restrictions only accumulate as the score drops.

Permissions are a pure function of the active tier's restriction set.
"""

from __future__ import annotations

from typing import Any

from backend_trustscore.scoring import config as cfg
from backend_trustscore.scoring.models import Permissions, RestrictionTier, TrustScoreResult

# Capability -> restriction flag that disables it (view_only disables all)
_CAPABILITY_BLOCKERS: dict[str, str] = {
    "can_create_events": cfg.NO_EVENT_CREATION,
    "can_create_posts": cfg.NO_POSTING,
    "can_comment": cfg.NO_COMMENTS,
    "can_flag": cfg.NO_FLAGGING,
    "can_send_friend_requests": cfg.NO_FRIEND_REQUESTS,
    "can_vote": cfg.VIEW_ONLY,
    "can_attend_events": cfg.VIEW_ONLY,
}

# Action names accepted by can_perform -> Permissions attribute
ACTIONS: dict[str, str | None] = {
    "create_event": "can_create_events",
    "create_post": "can_create_posts",
    "comment": "can_comment",
    "flag_content": "can_flag",
    "send_friend_request": "can_send_friend_requests",
    "upvote": "can_vote",
    "attend_event": "can_attend_events",
    "view_content": None,
}


def resolve_restriction(
    display_score: int,
    tiers: tuple[RestrictionTier, ...] = cfg.DEFAULT_RESTRICTION_TIERS,
) -> RestrictionTier:
    """
    Return the tightest tier whose ceiling is >= display_score.

    tiers must contain exactly one tier without a ceiling (Full Access).
    """
    bounded = sorted((t for t in tiers if t.ceiling is not None), key=lambda t: t.ceiling)
    for tier in bounded:
        if display_score <= tier.ceiling:
            return tier
    for tier in tiers:
        if tier.ceiling is None:
            return tier
    raise ValueError("restriction tiers need a Full Access tier without a ceiling")


def resolve_permissions(restriction: RestrictionTier) -> Permissions:
    view_only = cfg.VIEW_ONLY in restriction.restrictions
    flags = {
        capability: not view_only and blocker not in restriction.restrictions
        for capability, blocker in _CAPABILITY_BLOCKERS.items()
    }
    return Permissions(view_only=view_only, **flags)


def can_perform(result: TrustScoreResult, action: str) -> dict[str, Any]:
    """
    Check whether the subject may perform action under its current restriction.

    Returns {"allowed", "action", "restriction", "message"}. Unknown actions
    raise ValueError.
    """
    if action not in ACTIONS:
        raise ValueError(f"unknown action: {action!r}")
    attr = ACTIONS[action]
    allowed = True if attr is None else bool(getattr(result.permissions, attr))
    message = "Action allowed" if allowed else f"Action blocked: {result.restriction.message}"
    return {
        "allowed": allowed,
        "action": action,
        "restriction": result.restriction.name,
        "message": message,
    }
