"""
SQLAlchemy-backed persistence for trust scores and violations.

Uses TRUST_DB_URL / DATABASE_URL when set (e.g. PostgreSQL); otherwise
SQLite at TRUST_DB_PATH (trustscore.db). Implements the ScorePersistence
interface the orchestrator writes to, plus list_violations(), the loader
the violation ledger reads through.

Both tables are append-only: one score_history row per stored result, one
violations row per applied violation.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import Boolean, Column, Integer, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_trustscore.scoring.models import (
    TrustScoreResult,
    ViolationCategory,
    ViolationRecord,
    ViolationSeverity,
)
from backend_trustscore.trust_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class ScoreHistoryRow(Base):
    """One stored trust score result per row."""

    __tablename__ = "trust_score_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String(128), nullable=False, index=True)
    display_score = Column(Integer, nullable=False)
    internal_score = Column(Integer, nullable=False)
    tier = Column(String(32), nullable=False)
    restriction = Column(String(64), nullable=False)
    computed_at = Column(Integer, nullable=False, index=True)  # Unix
    payload = Column(Text, nullable=False)  # JSON of TrustScoreResult.to_dict()



class ViolationRow(Base):
    """Applied violation (append-only audit trail, replayed on recomputation)."""

    __tablename__ = "trust_violations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(String(128), nullable=False, index=True)
    violation_type = Column(String(64), nullable=False, index=True)
    severity = Column(String(16), nullable=False)
    category = Column(String(16), nullable=False)
    base_points = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False)
    timestamp = Column(Integer, nullable=False, index=True)  # Unix
    repeat_offense = Column(Boolean, nullable=False, default=False)
    appealable = Column(Boolean, nullable=False, default=True)
    context = Column(Text, nullable=True)  # JSON object

    def to_record(self) -> ViolationRecord:
        return ViolationRecord(
            violation_type=self.violation_type,
            severity=ViolationSeverity(self.severity),
            category=ViolationCategory(self.category),
            base_points=self.base_points,
            points=self.points,
            timestamp=self.timestamp,
            repeat_offense=bool(self.repeat_offense),
            appealable=bool(self.appealable),
            context=json.loads(self.context) if self.context else {},
        )


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


def _redact_url(url: str) -> str:
    """Drop credentials and query string for logging."""
    return url.split("?")[0].split("@")[-1].split("//")[-1]


class SqlScoreStore:
    """
    ScorePersistence over SQLAlchemy.

    One engine and session factory per store instance. Call init_db() once
    at startup; it is safe to call repeatedly.
    """

    def __init__(self, database_url: str) -> None:
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.database_url = database_url
        self.engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info("score_store_engine", url=_redact_url(database_url))

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Context manager for a single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("score_store_init_db", url=_redact_url(self.database_url))
        except Exception as e:
            logger.exception("score_store_init_db_failed", error=str(e))
            raise

    def dispose(self) -> None:
        self.engine.dispose()

    # --- ScorePersistence ---

    def persist(self, subject_id: str, result: TrustScoreResult) -> None:
        """Append one score_history row. Raises on DB errors (the orchestrator degrades)."""
        try:
            with self._session_scope() as session:
                session.add(ScoreHistoryRow(
                    subject_id=subject_id,
                    display_score=result.display_score,
                    internal_score=result.internal_score,
                    tier=result.tier,
                    restriction=result.restriction.name,
                    computed_at=result.computed_at,
                    payload=json.dumps(result.to_dict(), sort_keys=True),
                ))
            logger.debug("score_persisted", subject_id=subject_id, display_score=result.display_score)
        except Exception as e:
            logger.exception("score_persist_failed", subject_id=subject_id, error=str(e))
            raise

    def append_violation(self, subject_id: str, record: ViolationRecord) -> None:
        try:
            with self._session_scope() as session:
                session.add(ViolationRow(
                    subject_id=subject_id,
                    violation_type=record.violation_type,
                    severity=record.severity.value,
                    category=record.category.value,
                    base_points=record.base_points,
                    points=record.points,
                    timestamp=record.timestamp,
                    repeat_offense=record.repeat_offense,
                    appealable=record.appealable,
                    context=json.dumps(record.context, sort_keys=True, default=str),
                ))
            logger.debug("violation_persisted", subject_id=subject_id, violation_type=record.violation_type)
        except Exception as e:
            logger.exception("violation_persist_failed", subject_id=subject_id, error=str(e))
            raise

    # --- Reads ---

    def list_violations(self, subject_id: str) -> list[ViolationRecord]:
        """All violations for a subject, oldest first."""
        with self._session_scope() as session:
            rows = (
                session.query(ViolationRow)
                .filter(ViolationRow.subject_id == subject_id)
                .order_by(ViolationRow.timestamp, ViolationRow.id)
                .all()
            )
            return [r.to_record() for r in rows]
