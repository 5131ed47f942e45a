"""
FastAPI router: GET /score/{subject_id}, POST /violation/{subject_id}, POST /invalidate/{subject_id}.

The only operations external callers (UI, moderation tooling) may invoke.
Handlers are sync so the blocking orchestrator runs in FastAPI's threadpool.
Engine errors propagate to the exception handlers in server.py
(InvalidInputError -> 400, DependencyUnavailableError -> 503).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from backend_trustscore.orchestrator.engine import TrustScoreOrchestrator
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["trust-score"])


def get_orchestrator(request: Request) -> TrustScoreOrchestrator:
    """Dependency: app-scoped orchestrator built at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Trust score engine not initialised")
    return orchestrator


def _subject(subject_id: str) -> str:
    subject_id = (subject_id or "").strip()
    if not subject_id:
        raise HTTPException(status_code=400, detail="subject_id must be non-empty")
    return subject_id


class ViolationRequest(BaseModel):
    """POST /violation/{subject_id} body."""

    type: str = Field(..., min_length=1, max_length=64, description="Violation type, e.g. hate_speech or hateSpeech")
    context: dict[str, Any] = Field(default_factory=dict, description="Moderation context stored with the record")


class InvalidateResponse(BaseModel):
    """POST /invalidate/{subject_id} response."""

    subject_id: str = Field(..., description="Subject whose cached score was dropped")
    invalidated: bool = Field(..., description="True if a cached score existed")


@router.get("/score/{subject_id}")
def get_score(
    subject_id: str,
    orchestrator: TrustScoreOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Return the subject's trust score, recomputing when the cache is cold.

    stale=true in the body means the value was served from cache because a
    recomputation was in flight or the signal source was unreachable.
    """
    subject_id = _subject(subject_id)
    result = orchestrator.get_or_recompute(subject_id)
    logger.debug("api_score_served", subject_id=subject_id, stale=result.stale)
    return result.to_dict()


@router.post("/violation/{subject_id}")
def post_violation(
    subject_id: str,
    body: ViolationRequest,
    orchestrator: TrustScoreOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Apply a violation and return the penalised score."""
    subject_id = _subject(subject_id)
    result = orchestrator.record_violation(subject_id, body.type, body.context)
    logger.info(
        "api_violation_recorded",
        subject_id=subject_id,
        violation_type=body.type,
        display_score=result.display_score,
    )
    return result.to_dict()


@router.post("/invalidate/{subject_id}", response_model=InvalidateResponse)
def post_invalidate(
    subject_id: str,
    orchestrator: TrustScoreOrchestrator = Depends(get_orchestrator),
) -> InvalidateResponse:
    """Drop the cached score so the next read recomputes."""
    subject_id = _subject(subject_id)
    return InvalidateResponse(subject_id=subject_id, invalidated=orchestrator.invalidate(subject_id))
