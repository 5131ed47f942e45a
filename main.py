"""
Main entrypoint: trust score API server.

Loads .env, configures structured logging, builds the orchestrator (SQL
persistence from TRUST_DB_URL / DATABASE_URL / TRUST_DB_PATH) and serves the
FastAPI app with uvicorn.

Env: API_HOST, API_PORT, LOG_LEVEL, TRUST_CACHE_TTL_SEC, TRUST_LOCK_TIMEOUT_SEC, etc.

Equivalent: uvicorn backend_trustscore.api_server.server:app --host 0.0.0.0 --port 8000
"""

# Configure structured JSON logging before other imports that may log
from backend_trustscore.trust_logging import configure_logging, get_logger

logger = get_logger("main")


def main() -> None:
    """Run the FastAPI server in the main thread."""
    from backend_trustscore.config import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        logger.error("main_config_error", message=str(e))
        raise SystemExit(1) from e

    configure_logging(settings.log_level)

    from backend_trustscore.api_server.server import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower(), log_config=None)


if __name__ == "__main__":
    main()
