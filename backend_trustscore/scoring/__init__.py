"""
Trust scoring pipeline.

Pure, deterministic stages over an explicit signal snapshot:
components (with decay) -> aggregate (bonuses, overflow, tiers)
-> penalties (escalation, protection, restrictions) -> recovery plan.
"""

from backend_trustscore.scoring.aggregator import aggregate, with_internal_score
from backend_trustscore.scoring.components import compute_components, depreciation_warnings
from backend_trustscore.scoring.config import ScoringConfig
from backend_trustscore.scoring.errors import (
    DependencyUnavailableError,
    InvalidInputError,
    InvalidSignalError,
    ScoreUnavailableError,
    SignalSourceUnavailableError,
    TrustScoreError,
    UnknownViolationError,
    ViolationStoreUnavailableError,
)
from backend_trustscore.scoring.models import TrustScoreResult, ViolationRecord
from backend_trustscore.scoring.penalties import apply_penalty, replay_violations
from backend_trustscore.scoring.pipeline import compute_trust_score
from backend_trustscore.scoring.recovery import plan as recovery_plan
from backend_trustscore.scoring.restrictions import can_perform
from backend_trustscore.scoring.signals import SignalSnapshot

__all__ = [
    "DependencyUnavailableError",
    "InvalidInputError",
    "InvalidSignalError",
    "ScoreUnavailableError",
    "ScoringConfig",
    "SignalSnapshot",
    "SignalSourceUnavailableError",
    "TrustScoreError",
    "TrustScoreResult",
    "UnknownViolationError",
    "ViolationRecord",
    "ViolationStoreUnavailableError",
    "aggregate",
    "apply_penalty",
    "can_perform",
    "compute_components",
    "compute_trust_score",
    "depreciation_warnings",
    "recovery_plan",
    "replay_violations",
    "with_internal_score",
]
