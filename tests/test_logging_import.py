"""
Test that trust_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from trust_logging and emit one structured event."""
    from backend_trustscore.trust_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    for method in ("info", "debug", "warning", "error", "exception"):
        assert hasattr(logger, method)
    logger.info("test_message", key="value")


def test_bind_subject_carries_subject_id():
    """bind_subject() carries subject_id into every event."""
    from structlog.testing import capture_logs

    from backend_trustscore.trust_logging import bind_subject

    with capture_logs() as logs:
        bind_subject("alice").warning("score_probe", display_score=42)
    assert logs == [
        {
            "event": "score_probe",
            "subject_id": "alice",
            "display_score": 42,
            "logger": "backend_trustscore",
            "log_level": "warning",
        }
    ]
