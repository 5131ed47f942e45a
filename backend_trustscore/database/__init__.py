"""
Durable storage for trust scores and violations (SQLAlchemy).
"""

from backend_trustscore.database.score_store import SqlScoreStore

__all__ = ["SqlScoreStore"]
