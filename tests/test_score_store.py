"""
Pytest tests for the SQLAlchemy score store. Uses a temporary SQLite DB via conftest.
"""

from __future__ import annotations

import json


def _history_rows(store, subject_id):
    """(display_score, tier, payload) per stored row, oldest first."""
    from sqlalchemy.orm import Session

    from backend_trustscore.database.score_store import ScoreHistoryRow

    with Session(store.engine) as session:
        rows = (
            session.query(ScoreHistoryRow)
            .filter(ScoreHistoryRow.subject_id == subject_id)
            .order_by(ScoreHistoryRow.id)
            .all()
        )
        return [(r.display_score, r.tier, json.loads(r.payload)) for r in rows]


def test_persist_appends_history(score_store, zero_result):
    """persist() appends one trust_score_history row per result, with the full payload."""
    from backend_trustscore.scoring.aggregator import with_internal_score

    score_store.persist("alice", zero_result)
    score_store.persist("alice", with_internal_score(zero_result, 72))
    rows = _history_rows(score_store, "alice")
    assert [(score, tier) for score, tier, _ in rows] == [(50, "basic"), (72, "trusted")]
    assert rows[-1][2]["restriction"]["name"] == "Full Access"
    assert _history_rows(score_store, "bob") == []


def test_violations_round_trip(score_store, zero_result, config):
    """append_violation() stores records that read back as equal ViolationRecords."""
    from backend_trustscore.scoring.penalties import apply_penalty

    record, _ = apply_penalty(zero_result, "fake_review", {"review_id": "r1"}, (), config, 1_750_000_000)
    score_store.append_violation("alice", record)
    assert score_store.list_violations("alice") == [record]
    assert score_store.list_violations("bob") == []


def test_ledger_seeded_from_store(score_store, make_orchestrator):
    """A new orchestrator over the same store replays violations recorded by an earlier one."""
    from backend_trustscore.orchestrator import ViolationLedger

    first = make_orchestrator(persistence=score_store, ledger=ViolationLedger(loader=score_store.list_violations))
    assert first.record_violation("alice", "flagged_post").display_score == 35

    second = make_orchestrator(persistence=score_store, ledger=ViolationLedger(loader=score_store.list_violations))
    assert second.get_or_recompute("alice").display_score == 35
    again = second.record_violation("alice", "flagged_post")
    assert again.display_score == 13
    assert second.ledger.history("alice")[-1].repeat_offense is True
