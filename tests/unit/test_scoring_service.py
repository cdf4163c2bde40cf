from datetime import timedelta

import pytest

from eventrec.config import ScoringWeights
from eventrec.models.domain.event_domain import InteractionRecord, UserContext
from eventrec.models.domain.recommendation_domain import ScoreBreakdown
from eventrec.services.scoring import ScoringService
from eventrec.services.scoring.geo import MAX_DISTANCE_KM
from tests.factories import BERLIN, FIXED_NOW, make_event


def _interactions(*types, category="music"):
    return [InteractionRecord(type=t, category=category) for t in types]


@pytest.mark.parametrize(
    "views, expected",
    [
        (0, 0.1),
        (4, 0.1),
        (5, 0.2),
        (19, 0.2),
        (20, 0.4),
        (49, 0.4),
        (50, 0.7),
        (99, 0.7),
        (100, 1.0),
    ],
)
def test_popularity_tiers(views, expected):
    assert ScoringService.popularity_score(make_event("e", views=views)) == expected


def test_popularity_sums_all_counters():
    event = make_event("e", views=40, saves=5, rsvps=3, shares=2)
    assert event.total_interactions == 50
    assert ScoringService.popularity_score(event) == 0.7


@pytest.mark.parametrize(
    "starts_in, expected",
    [
        (timedelta(hours=6), 1.0),
        (timedelta(days=3), 1.0),
        (timedelta(days=3, hours=23), 1.0),
        (timedelta(days=4), 0.8),
        (timedelta(days=7, hours=12), 0.8),
        (timedelta(days=8), 0.5),
        (timedelta(days=14), 0.5),
        (timedelta(days=15), 0.3),
        (timedelta(days=30), 0.3),
        (timedelta(days=31), 0.1),
        (timedelta(days=365), 0.1),
    ],
)
def test_recency_tiers_use_whole_days(starts_in, expected):
    event = make_event("e", starts_in=starts_in)
    assert ScoringService.recency_score(event, FIXED_NOW) == expected


def test_recency_is_zero_for_past_or_undated_events():
    past = make_event("e", starts_in=-timedelta(minutes=1))
    undated = make_event("e", starts_in=None)

    assert ScoringService.recency_score(past, FIXED_NOW) == 0.0
    assert ScoringService.recency_score(undated, FIXED_NOW) == 0.0


def test_interest_match_is_case_insensitive():
    user = UserContext(user_id="u", interests=["  MUSIC "])
    assert ScoringService.interest_score(user, make_event("e", category="Music")) == 1.0
    assert ScoringService.interest_score(user, make_event("e", category="food")) == 0.0
    assert ScoringService.interest_score(UserContext(user_id="u"), make_event("e")) == 0.0


def test_interaction_score_weights_same_category_only():
    interactions = _interactions("BUY", "BUY", "RSVP") + _interactions("BUY", category="food")
    score = ScoringService.interaction_score(make_event("e", category="music"), interactions)
    assert score == pytest.approx(0.28)


def test_interaction_score_saturates_and_ignores_unknown_types():
    event = make_event("e")
    assert ScoringService.interaction_score(event, _interactions(*["BUY"] * 15)) == 1.0
    assert ScoringService.interaction_score(event, _interactions("LIKE", "unknown")) == 0.0


def test_standard_score_blends_all_factors(scorer):
    user = UserContext(user_id="u", location=BERLIN, interests=["music"], has_interactions=True)
    event = make_event("e", views=50, starts_in=timedelta(days=2))

    breakdown = scorer.score(event, user, _interactions(*["BUY"] * 5), distance=3.0)

    assert breakdown.geo_score == 1.0
    assert breakdown.interest_score == 1.0
    assert breakdown.interaction_score == pytest.approx(0.5)
    assert breakdown.popularity_score == 0.7
    assert breakdown.recency_score == 1.0
    assert breakdown.final_score == pytest.approx(0.855)


def test_user_without_location_gets_no_geo_credit(scorer):
    user = UserContext(user_id="u", interests=["music"], has_interactions=True)
    breakdown = scorer.score(make_event("e"), user, [], distance=1.0)
    assert breakdown.geo_score == 0.0


def test_cold_start_without_interests(scorer):
    user = UserContext(user_id="u", location=BERLIN)
    breakdown = scorer.cold_start_score(make_event("e"), user, distance=12.0)

    assert breakdown.interest_score == 0.0
    assert breakdown.interaction_score == 0.0
    assert breakdown.final_score == pytest.approx(0.6 * 0.5 + 0.3 * 0.1 + 0.1 * 0.5)


def test_cold_start_with_interests(scorer):
    user = UserContext(user_id="u", location=BERLIN, interests=["music"])
    breakdown = scorer.cold_start_score(make_event("e"), user, distance=12.0)

    assert breakdown.interest_score == 1.0
    assert breakdown.final_score == pytest.approx(0.5 * 0.5 + 0.2 * 1.0 + 0.2 * 0.1 + 0.1 * 0.5)


def test_final_score_is_clamped_when_weights_overshoot(clock):
    scorer = ScoringService(ScoringWeights(1.0, 1.0, 1.0, 1.0, 1.0), clock=clock)
    user = UserContext(user_id="u", location=BERLIN, interests=["music"], has_interactions=True)
    event = make_event("e", views=500, starts_in=timedelta(days=1))

    breakdown = scorer.score(event, user, _interactions(*["BUY"] * 20), distance=0.5)

    assert breakdown.final_score == 1.0


def test_scoring_is_pure(scorer):
    user = UserContext(user_id="u", location=BERLIN, interests=["music"], has_interactions=True)
    event = make_event("e", views=30)
    interactions = _interactions("SAVE", "VIEW")
    before = event.model_dump()

    first = scorer.score(event, user, interactions, distance=7.5)
    second = scorer.score(event, user, interactions, distance=7.5)

    assert first == second
    assert event.model_dump() == before


def test_trending_score_uses_popularity_and_recency(scorer):
    event = make_event("e", views=120, starts_in=timedelta(days=5))
    assert scorer.trending_score(event) == pytest.approx(0.94)


def test_similarity_score_uses_geo_and_popularity(scorer):
    event = make_event("e", views=0)
    assert scorer.similarity_score(event, 3.0) == pytest.approx(0.64)
    assert scorer.similarity_score(event, MAX_DISTANCE_KM) == pytest.approx(0.04)


def test_reasons_follow_precedence_order():
    user = UserContext(user_id="u", location=BERLIN, interests=["music"])
    event = make_event("e", price="0", verified=True)
    breakdown = ScoreBreakdown(
        geo_score=1.0,
        interest_score=1.0,
        interaction_score=0.6,
        popularity_score=0.7,
        recency_score=1.0,
        final_score=0.9,
    )

    assert ScoringService.reasons(event, user, breakdown, 2.345) == [
        "Only 2.3 km away",
        "Matches your interest in music",
        "Similar to events you've saved",
        "Trending in your area",
        "Happening this weekend!",
        "Free event",
        "Verified host",
    ]


def test_reasons_for_mid_range_scores():
    user = UserContext(user_id="u", location=BERLIN)
    event = make_event("e", price="15.00")
    breakdown = ScoreBreakdown(
        geo_score=0.5,
        interest_score=0.0,
        interaction_score=0.4,
        popularity_score=0.4,
        recency_score=0.8,
        final_score=0.4,
    )

    assert ScoringService.reasons(event, user, breakdown, 15.0) == [
        "Within your area (15.0 km)",
        "Coming up this week",
    ]


def test_reasons_skip_distance_without_real_distance():
    user = UserContext(user_id="u")
    breakdown = ScoreBreakdown(1.0, 0.0, 0.0, 0.1, 0.1, 0.3)
    assert ScoringService.reasons(make_event("e"), user, breakdown, None) == []
