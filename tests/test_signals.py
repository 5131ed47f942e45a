"""
Tests for signal snapshot validation.
"""

from __future__ import annotations

import pytest


def test_zeroed_snapshot_is_valid():
    from backend_trustscore.scoring.signals import SignalSnapshot

    snap = SignalSnapshot.zeroed("alice")
    assert snap.profile_fields_filled == 0
    assert snap.average_content_rating is None
    assert snap.achievements == frozenset()


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"posts_count": -1}, "posts_count"),
        ({"posts_count": 2.5}, "posts_count"),
        ({"friends_count": True}, "friends_count"),
        ({"has_avatar": 1}, "has_avatar"),
        ({"average_content_rating": 6}, "average_content_rating"),
        ({"average_rating_received": 0.5}, "average_rating_received"),
        ({"account_age_days": float("nan")}, "account_age_days"),
        ({"flags_submitted": 2, "accurate_flags": 3}, "accurate_flags"),
        ({"total_interactions": 1, "positive_interactions": 2}, "positive_interactions"),
        ({"streaks": {"daily_login": -1}}, "streaks.daily_login"),
        ({"last_activity": {"karma": 1}}, "last_activity.karma"),
        ({"subject_id": " "}, "subject_id"),
    ],
)
def test_invalid_fields_rejected(overrides, field):
    """Each malformed field raises InvalidSignalError naming that field."""
    from backend_trustscore.scoring.errors import InvalidInputError, InvalidSignalError
    from backend_trustscore.scoring.signals import SignalSnapshot

    kwargs = {"subject_id": "alice", **overrides}
    with pytest.raises(InvalidSignalError) as exc_info:
        SignalSnapshot(**kwargs)
    assert exc_info.value.field == field
    assert isinstance(exc_info.value, InvalidInputError)


def test_from_dict_rejects_unknown_key():
    from backend_trustscore.scoring.errors import InvalidSignalError
    from backend_trustscore.scoring.signals import SignalSnapshot

    with pytest.raises(InvalidSignalError, match="unknown snapshot field"):
        SignalSnapshot.from_dict({"subject_id": "alice", "karma": 3})


def test_from_dict_round_trip():
    """from_dict(to_dict()) yields an equal snapshot; subject_id may be supplied separately."""
    from backend_trustscore.scoring.signals import SignalSnapshot

    snap = SignalSnapshot(
        subject_id="alice",
        has_avatar=True,
        posts_count=4,
        average_content_rating=4.5,
        achievements=frozenset({"first_post"}),
        streaks={"daily_login": 3},
        last_activity={"content_quality": 1_750_000_000},
    )
    data = snap.to_dict()
    assert data["achievements"] == ["first_post"]
    assert SignalSnapshot.from_dict(data) == snap

    del data["subject_id"]
    assert SignalSnapshot.from_dict(data, subject_id="alice") == snap


def test_snapshot_mappings_are_read_only():
    from backend_trustscore.scoring.signals import SignalSnapshot

    snap = SignalSnapshot(subject_id="alice", streaks={"daily_login": 3})
    with pytest.raises(TypeError):
        snap.streaks["daily_login"] = 9
