import pytest

from eventrec.config import CacheTTLs, RankingConfig, ScoringWeights
from eventrec.models.domain.event_domain import UserContext
from eventrec.services.recommendation_cache import RecommendationCache
from eventrec.services.recommendation_service import RecommendationService
from eventrec.services.scoring import ScoringService
from tests.factories import (
    FakeClock,
    FakeEventSource,
    FakeInteractionSource,
    FakeRedis,
    FakeUserSource,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def cache(fake_redis):
    return RecommendationCache(fake_redis, CacheTTLs())


@pytest.fixture
def scorer(clock):
    return ScoringService(ScoringWeights(), clock=clock)


@pytest.fixture
def build_service(scorer, cache):
    """Factory for a RecommendationService wired to in-memory collaborators."""

    def _build(
        events=(),
        user: UserContext | None = None,
        interactions=(),
        history=None,
        **overrides,
    ) -> RecommendationService:
        kwargs = {
            "scorer": scorer,
            "cache": cache,
            "events": FakeEventSource(events),
            "interactions": FakeInteractionSource(interactions),
            "users": FakeUserSource(user),
            "config": RankingConfig(),
            "default_interests": ["music", "technology", "food"],
            "history": history,
        }
        kwargs.update(overrides)
        return RecommendationService(**kwargs)

    return _build
