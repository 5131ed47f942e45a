"""
Tests for the component score calculator: formulas, bounds, temporal decay.
"""

from __future__ import annotations

import pytest

NOW_TS = 1_750_000_000
MONTH = 30 * 86400


def _rich_snapshot(**overrides):
    from backend_trustscore.scoring.signals import SignalSnapshot

    data = dict(
        subject_id="alice",
        account_age_days=900,
        has_avatar=True,
        has_bio=True,
        has_location=True,
        has_interests=True,
        has_website=True,
        has_occupation=True,
        has_social_links=True,
        phone_verified=True,
        email_verified=True,
        events_attended=40,
        events_hosted=6,
        posts_count=120,
        comments_count=400,
        reactions_given=900,
        average_content_rating=4.8,
        content_upvotes=300,
        friends_count=80,
        social_interactions=500,
        shares_count=40,
        reviews_given=20,
        helpful_review_votes=30,
        average_rating_received=4.9,
        accurate_reports=12,
        feedback_submitted=10,
        helped_users=25,
        positive_interactions=95,
        total_interactions=100,
        flags_submitted=10,
        accurate_flags=9,
        connected_accounts=4,
        verified_accounts=3,
    )
    data.update(overrides)
    return SignalSnapshot(**data)


def test_zero_activity_scores_neutral_everywhere(config):
    """A snapshot with no activity yields 50 on every component, with no decay."""
    from backend_trustscore.scoring.components import compute_components
    from backend_trustscore.scoring.config import COMPONENT_NAMES
    from backend_trustscore.scoring.signals import SignalSnapshot

    components = compute_components(SignalSnapshot.zeroed("alice"), config, NOW_TS)
    assert [c.name for c in components] == list(COMPONENT_NAMES)
    for c in components:
        assert c.raw == pytest.approx(50.0)
        assert c.decayed == pytest.approx(50.0)


def test_formula_spot_checks(config):
    """Full profile -> 100; 3 of 4 positive interactions -> 75; 10 events attended -> 80; no accurate flags -> 0."""
    from backend_trustscore.scoring.components import compute_component
    from backend_trustscore.scoring.signals import SignalSnapshot

    snap = SignalSnapshot(
        subject_id="alice",
        has_avatar=True,
        has_bio=True,
        has_location=True,
        has_interests=True,
        has_website=True,
        has_occupation=True,
        has_social_links=True,
        positive_interactions=3,
        total_interactions=4,
        events_attended=10,
        flags_submitted=2,
        accurate_flags=0,
    )
    assert compute_component("profile_completeness", snap, config, NOW_TS).raw == pytest.approx(100.0)
    assert compute_component("positive_interactions", snap, config, NOW_TS).raw == pytest.approx(75.0)
    assert compute_component("events_participation", snap, config, NOW_TS).raw == pytest.approx(80.0)
    assert compute_component("flagging_accuracy", snap, config, NOW_TS).raw == pytest.approx(0.0)


def test_components_clamped_to_range(config):
    """Extreme inputs on both ends stay within [0, 100]."""
    from backend_trustscore.scoring.components import compute_components
    from backend_trustscore.scoring.signals import SignalSnapshot

    awful = SignalSnapshot(
        subject_id="bob",
        average_content_rating=1.0,
        content_reports=50,
        event_no_shows=10,
        average_rating_received=1.0,
        total_interactions=10,
        flags_submitted=10,
    )
    for snap in (awful, _rich_snapshot(), _rich_snapshot(events_attended=10_000, friends_count=10_000)):
        for c in compute_components(snap, config, NOW_TS):
            assert 0.0 <= c.decayed <= c.raw <= 100.0, c
    content = next(c for c in compute_components(awful, config, NOW_TS) if c.name == "content_quality")
    assert content.raw == 0.0


def test_decay_reduces_stale_components(config):
    """Events untouched for 12 months decay by 0.99 ** (12 * 6); non-decaying components ignore timestamps."""
    from backend_trustscore.scoring.components import compute_component

    snap = _rich_snapshot(
        events_attended=10,
        events_hosted=0,
        last_activity={"events_participation": NOW_TS - 12 * MONTH, "account_age": NOW_TS - 60 * MONTH},
    )
    events = compute_component("events_participation", snap, config, NOW_TS)
    assert events.raw == pytest.approx(80.0)
    assert events.decayed == pytest.approx(80.0 * 0.99 ** 72)
    age = compute_component("account_age", snap, config, NOW_TS)
    assert age.decayed == age.raw


def test_decay_floor_is_thirty_percent_of_raw(config):
    """Very stale activity never loses more than 70% of the raw score."""
    from backend_trustscore.scoring.components import compute_components

    stale = {name: NOW_TS - 240 * MONTH for name in (
        "connected_accounts", "community_activity", "content_quality", "social_engagement",
        "events_participation", "platform_contribution", "positive_interactions", "flagging_accuracy",
    )}
    for c in compute_components(_rich_snapshot(last_activity=stale), config, NOW_TS):
        if c.decays:
            assert c.decayed >= 0.30 * c.raw - 1e-9
            assert c.decayed == pytest.approx(0.30 * c.raw)


def test_decay_monotone_and_future_timestamps_ignored(config):
    """More elapsed months never raise the score; a future timestamp means no decay."""
    from backend_trustscore.scoring.components import compute_component

    previous = None
    for months in (0, 1, 3, 6, 12, 24):
        snap = _rich_snapshot(last_activity={"community_activity": NOW_TS - months * MONTH})
        decayed = compute_component("community_activity", snap, config, NOW_TS).decayed
        if previous is not None:
            assert decayed <= previous
        previous = decayed

    future = _rich_snapshot(last_activity={"community_activity": NOW_TS + 5 * MONTH})
    c = compute_component("community_activity", future, config, NOW_TS)
    assert c.decayed == c.raw


def test_depreciation_warnings(config):
    """Stale decaying components with more than 5 lost points produce warnings; fresh ones do not."""
    from backend_trustscore.scoring.components import compute_components, depreciation_warnings

    fresh = compute_components(_rich_snapshot(), config, NOW_TS)
    assert depreciation_warnings(fresh) == []

    stale = compute_components(
        _rich_snapshot(last_activity={"events_participation": NOW_TS - 12 * MONTH}), config, NOW_TS
    )
    warnings = depreciation_warnings(stale)
    assert [w["component"] for w in warnings] == ["events_participation"]
    assert warnings[0]["urgency"] == "high"
    assert warnings[0]["recoverable_points"] <= 25.0
