"""
Structured logging for the trust score engine.

JSON logs with timestamp, subject_id, event_type.
Use get_logger() in every module for aggregation-friendly output.
"""

from backend_trustscore.trust_logging.logger import bind_subject, configure_logging, get_logger

__all__ = ["bind_subject", "configure_logging", "get_logger"]
