"""
FastAPI server for the trust score engine.

Mounts the score router under /api and exposes /health. The orchestrator is
app-scoped: built at startup from env settings (SQL persistence, logging
notifier) unless one is injected via create_app(orchestrator=...).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend_trustscore import __version__
from backend_trustscore.api_server.trust_score import router as trust_router
from backend_trustscore.config import Settings, get_settings
from backend_trustscore.database.score_store import SqlScoreStore
from backend_trustscore.orchestrator import (
    InMemorySignalSource,
    LoggingNotifier,
    TrustScoreOrchestrator,
    ViolationLedger,
)
from backend_trustscore.scoring.errors import DependencyUnavailableError, InvalidInputError
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)


def build_orchestrator(settings: Settings | None = None) -> tuple[TrustScoreOrchestrator, SqlScoreStore]:
    """
    Wire the production orchestrator: SQL persistence, ledger seeded from the
    violations table, logging notifier.

    The signal source is the in-memory adapter until an activity aggregation
    layer is plugged in; unknown subjects score as zero-activity.
    """
    settings = settings or get_settings()
    store = SqlScoreStore(settings.database_url)
    store.init_db()
    orchestrator = TrustScoreOrchestrator(
        signal_source=InMemorySignalSource(),
        persistence=store,
        notifier=LoggingNotifier(),
        ledger=ViolationLedger(loader=store.list_violations, max_loaded_subjects=settings.ledger_max_subjects),
        settings=settings,
    )
    return orchestrator, store


def create_app(orchestrator: TrustScoreOrchestrator | None = None) -> FastAPI:
    """Build the FastAPI app. Pass an orchestrator to skip env-driven wiring (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store: SqlScoreStore | None = None
        if getattr(app.state, "orchestrator", None) is None:
            app.state.orchestrator, store = build_orchestrator()
            logger.info("trust_engine_started", cache_ttl_sec=app.state.orchestrator.cache.ttl_sec)
        yield
        if store is not None:
            store.dispose()
            logger.info("trust_engine_stopped")

    app = FastAPI(
        title="Trust Score Engine API",
        description="Per-subject trust scores, violations and cache control.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.include_router(trust_router, prefix="/api")

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    @app.exception_handler(InvalidInputError)
    def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
        logger.info("api_invalid_input", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DependencyUnavailableError)
    def unavailable_handler(request: Request, exc: DependencyUnavailableError) -> JSONResponse:
        logger.warning("api_dependency_unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "retryable": exc.retryable},
        )

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    return app


app = create_app()
