"""
Structured logging for the engine: one JSON object per line.

Every event carries event_type, level, timestamp and the logger name; callers
add keyword context (subject_id, display_score, violation_type, ...).
Standard-library loggers (uvicorn, SQLAlchemy) are routed through the same
renderer so a deployment sees a single log format.

Configured once on import from LOG_LEVEL / LOG_FORMAT; main() calls
configure_logging() again with the loaded settings. No backend_trustscore
imports here, so any module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "json"

# third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """ISO 8601 UTC timestamp unless the caller supplied one."""
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Rename structlog's 'event' key to event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _renderer(fmt: str) -> Any:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    (Re)configure structlog and the stdlib root logger.

    Args:
        level: Level name (DEBUG, INFO, ...); defaults to LOG_LEVEL env.
        fmt: "json" or "console"; defaults to LOG_FORMAT env.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL).strip().upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_FORMAT).strip().lower()

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    structlog.configure(
        processors=shared + [_event_type, _renderer(fmt)],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared + [structlog.stdlib.add_logger_name],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _event_type,
                _renderer(fmt),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level_value)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("score_recomputed", subject_id=sid, display_score=72)

    Output (JSON): {"event_type": "score_recomputed", "subject_id": "...",
    "display_score": 72, "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_subject(subject_id: str) -> structlog.BoundLogger:
    """Return a logger with subject_id bound to all subsequent log calls."""
    return get_logger("backend_trustscore").bind(subject_id=subject_id)
