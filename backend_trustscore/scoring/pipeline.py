"""
Single scoring pipeline: snapshot -> components -> aggregate -> violation replay.

The one place that strings the pure stages together. The orchestrator calls
compute_trust_score(); tests call it directly with a fixed now_ts.
"""

from __future__ import annotations

import time
from typing import Iterable

from backend_trustscore.scoring.aggregator import aggregate
from backend_trustscore.scoring.components import compute_components, depreciation_warnings
from backend_trustscore.scoring.config import ScoringConfig
from backend_trustscore.scoring.models import TrustScoreResult, ViolationRecord
from backend_trustscore.scoring.penalties import replay_violations
from backend_trustscore.scoring.signals import SignalSnapshot
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)


def compute_trust_score(
    snapshot: SignalSnapshot,
    violations: Iterable[ViolationRecord] = (),
    config: ScoringConfig | None = None,
    now_ts: int | None = None,
) -> TrustScoreResult:
    """
    Run the full pipeline for one subject.

    Args:
        snapshot: Validated signal snapshot.
        violations: The subject's stored violation records; their applied
            deltas are replayed so recomputation never drops a penalty.
        config: Scoring tables; defaults when None.
        now_ts: Reference time (unix seconds); current time when None.

    Returns:
        TrustScoreResult with computed_at = now_ts.
    """
    config = config or ScoringConfig()
    now_ts = now_ts if now_ts is not None else int(time.time())
    components = compute_components(snapshot, config, now_ts)
    result = aggregate(components, snapshot, config, now_ts)
    records = list(violations)
    if records:
        result = replay_violations(result, records, config)

    decaying = depreciation_warnings(components)
    logger.info(
        "trust_score_computed",
        subject_id=snapshot.subject_id,
        display_score=result.display_score,
        internal_score=result.internal_score,
        tier=result.tier,
        restriction=result.restriction.name,
        violations_replayed=len(records),
        decaying_components=[w["component"] for w in decaying],
    )
    return result
