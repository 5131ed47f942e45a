"""
Pytest tests for the trust score HTTP surface (FastAPI TestClient, in-memory orchestrator).
"""

from __future__ import annotations


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_get_score_zero_activity(client):
    """GET /api/score/{id} for an unknown subject returns the neutral score."""
    r = client.get("/api/score/alice")
    assert r.status_code == 200
    data = r.json()
    assert data["subject_id"] == "alice"
    assert data["display_score"] == 50
    assert data["tier"] == "basic"
    assert data["restriction"]["name"] == "Probation"
    assert data["stale"] is False
    assert data["recovery_plan"] is None


def test_post_violation(client):
    """POST /api/violation/{id} applies the penalty and returns the new score."""
    r = client.post("/api/violation/alice", json={"type": "hateSpeech", "context": {"post_id": "p9"}})
    assert r.status_code == 200
    data = r.json()
    assert data["display_score"] == 5
    assert data["restriction"]["name"] == "Account Under Review"
    assert data["permissions"]["view_only"] is True
    assert data["recovery_plan"]["points_needed"] == 45

    # subsequent reads keep the penalty
    assert client.get("/api/score/alice").json()["display_score"] == 5


def test_post_unknown_violation_is_400(client, orchestrator):
    r = client.post("/api/violation/alice", json={"type": "jaywalking"})
    assert r.status_code == 400
    assert "unknown violation type" in r.json()["detail"]
    assert orchestrator.ledger.history("alice") == ()


def test_post_violation_requires_type(client):
    r = client.post("/api/violation/alice", json={"context": {}})
    assert r.status_code == 422


def test_invalidate(client):
    r = client.post("/api/invalidate/alice")
    assert r.status_code == 200
    assert r.json() == {"subject_id": "alice", "invalidated": False}
    client.get("/api/score/alice")
    r = client.post("/api/invalidate/alice")
    assert r.json()["invalidated"] is True


def test_unavailable_source_is_503(make_orchestrator):
    """Signal source down and nothing cached -> 503 with retryable flag."""
    from fastapi.testclient import TestClient

    from backend_trustscore.api_server.server import create_app

    class DownSource:
        def fetch_snapshot(self, subject_id):
            raise TimeoutError("upstream timeout")

    client = TestClient(create_app(make_orchestrator(signal_source=DownSource())))
    r = client.get("/api/score/alice")
    assert r.status_code == 503
    assert r.json()["retryable"] is True


def test_unavailable_violation_store_is_503(make_orchestrator):
    """Violation history unreadable and nothing cached -> 503 with retryable flag."""
    from fastapi.testclient import TestClient
    from sqlalchemy.exc import OperationalError

    from backend_trustscore.api_server.server import create_app
    from backend_trustscore.orchestrator import ViolationLedger

    def failing_loader(subject_id):
        raise OperationalError("SELECT * FROM trust_violations", {}, Exception("db unreachable"))

    client = TestClient(create_app(make_orchestrator(ledger=ViolationLedger(loader=failing_loader))))
    r = client.get("/api/score/alice")
    assert r.status_code == 503
    assert r.json()["retryable"] is True
    r = client.post("/api/violation/alice", json={"type": "flagged_post"})
    assert r.status_code == 503
    assert r.json()["retryable"] is True
