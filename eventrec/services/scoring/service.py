"""
Event scoring service - blends proximity, interests, interaction history,
popularity and recency into a single comparable score.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from eventrec.config import ScoringWeights
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.domain.event_domain import CandidateEvent, InteractionRecord, UserContext
from eventrec.models.domain.recommendation_domain import ScoreBreakdown, clamp01

from . import geo

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400

# Weighted interaction units that saturate the interaction score
INTERACTION_SCORE_CEILING = 10.0

# (minimum total interactions, score), checked in order
POPULARITY_TIERS: tuple[tuple[int, float], ...] = (
    (100, 1.0),
    (50, 0.7),
    (20, 0.4),
    (5, 0.2),
)
POPULARITY_FLOOR = 0.1

# (maximum days until start, score), checked in order
RECENCY_TIERS: tuple[tuple[int, float], ...] = (
    (3, 1.0),
    (7, 0.8),
    (14, 0.5),
    (30, 0.3),
)
RECENCY_FLOOR = 0.1

COLD_START_WEIGHTS = ScoringWeights(
    geo=0.60, interest=0.0, interaction=0.0, popularity=0.30, recency=0.10
)
COLD_START_WITH_INTERESTS_WEIGHTS = ScoringWeights(
    geo=0.50, interest=0.20, interaction=0.0, popularity=0.20, recency=0.10
)

TRENDING_POPULARITY_WEIGHT = 0.7
TRENDING_RECENCY_WEIGHT = 0.3
SIMILAR_GEO_WEIGHT = 0.6
SIMILAR_POPULARITY_WEIGHT = 0.4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ScoringService:
    """
    Scores candidate events for a user.

    Score = geo_w * geo + interest_w * interest + interaction_w * interaction
            + popularity_w * popularity + recency_w * recency, clamped to [0, 1].

    The service is stateless apart from its weights and clock; scoring the
    same inputs twice yields equal breakdowns.
    """

    def __init__(self, weights: ScoringWeights, clock: Callable[[], datetime] = _utc_now):
        self.weights = weights
        self._clock = clock

    def score(
        self,
        event: CandidateEvent,
        user: UserContext,
        interactions: Iterable[InteractionRecord],
        distance: float | None,
    ) -> ScoreBreakdown:
        """Standard path for users with interaction history."""
        now = self._clock()
        breakdown = self._weighted(
            self.weights,
            geo_score=geo.geo_score(distance) if user.has_location() else 0.0,
            interest_score=self.interest_score(user, event),
            interaction_score=self.interaction_score(event, interactions),
            popularity_score=self.popularity_score(event),
            recency_score=self.recency_score(event, now),
        )

        logger.debug(
            "Scored event",
            event_id=event.id,
            final=breakdown.final_score,
            geo=breakdown.geo_score,
            interest=breakdown.interest_score,
            interaction=breakdown.interaction_score,
            popularity=breakdown.popularity_score,
            recency=breakdown.recency_score,
        )
        return breakdown

    def cold_start_score(
        self, event: CandidateEvent, user: UserContext, distance: float | None
    ) -> ScoreBreakdown:
        """Reduced formula for users with no interaction history."""
        now = self._clock()
        geo_value = geo.geo_score(distance) if user.has_location() else 0.0

        if user.has_interests():
            return self._weighted(
                COLD_START_WITH_INTERESTS_WEIGHTS,
                geo_score=geo_value,
                interest_score=self.interest_score(user, event),
                interaction_score=0.0,
                popularity_score=self.popularity_score(event),
                recency_score=self.recency_score(event, now),
            )

        return self._weighted(
            COLD_START_WEIGHTS,
            geo_score=geo_value,
            interest_score=0.0,
            interaction_score=0.0,
            popularity_score=self.popularity_score(event),
            recency_score=self.recency_score(event, now),
        )

    def trending_score(self, event: CandidateEvent) -> float:
        return clamp01(
            TRENDING_POPULARITY_WEIGHT * self.popularity_score(event)
            + TRENDING_RECENCY_WEIGHT * self.recency_score(event, self._clock())
        )

    def similarity_score(self, event: CandidateEvent, distance_to_target: float) -> float:
        return clamp01(
            SIMILAR_GEO_WEIGHT * geo.geo_score(distance_to_target)
            + SIMILAR_POPULARITY_WEIGHT * self.popularity_score(event)
        )

    @staticmethod
    def _weighted(weights: ScoringWeights, **scores: float) -> ScoreBreakdown:
        final = (
            weights.geo * scores["geo_score"]
            + weights.interest * scores["interest_score"]
            + weights.interaction * scores["interaction_score"]
            + weights.popularity * scores["popularity_score"]
            + weights.recency * scores["recency_score"]
        )
        return ScoreBreakdown(final_score=clamp01(final), **scores)

    # ------------------------------------------------------------------
    # Component scores
    # ------------------------------------------------------------------

    @staticmethod
    def interest_score(user: UserContext, event: CandidateEvent) -> float:
        """1.0 on an exact (case-insensitive) category/interest match, else 0.0."""
        if not user.has_interests() or event.category is None:
            return 0.0

        for interest in user.interests:
            if event.category.matches(interest):
                return 1.0
        return 0.0

    @staticmethod
    def interaction_score(
        event: CandidateEvent, interactions: Iterable[InteractionRecord]
    ) -> float:
        """Weighted affinity for the event's category, normalized to [0, 1]."""
        if event.category is None:
            return 0.0

        weighted = sum(
            interaction.weight
            for interaction in interactions
            if event.category.matches(interaction.category)
        )
        return min(weighted / INTERACTION_SCORE_CEILING, 1.0)

    @staticmethod
    def popularity_score(event: CandidateEvent) -> float:
        total = event.total_interactions
        for minimum, score in POPULARITY_TIERS:
            if total >= minimum:
                return score
        return POPULARITY_FLOOR

    @staticmethod
    def recency_score(event: CandidateEvent, now: datetime) -> float:
        if event.start_time is None or event.start_time < now:
            return 0.0

        days_until = int((event.start_time - now).total_seconds() // SECONDS_PER_DAY)
        for maximum, score in RECENCY_TIERS:
            if days_until <= maximum:
                return score
        return RECENCY_FLOOR

    # ------------------------------------------------------------------
    # Explanations
    # ------------------------------------------------------------------

    @staticmethod
    def reasons(
        event: CandidateEvent,
        user: UserContext,
        breakdown: ScoreBreakdown,
        distance: float | None,
    ) -> list[str]:
        """Human-readable reasons, in fixed precedence order."""
        reasons: list[str] = []

        if geo.is_real_distance(distance):
            if breakdown.geo_score >= 0.8:
                reasons.append(f"Only {distance:.1f} km away")
            elif breakdown.geo_score >= 0.5:
                reasons.append(f"Within your area ({distance:.1f} km)")

        if breakdown.interest_score == 1.0:
            reasons.append(f"Matches your interest in {event.category_name}")

        if breakdown.interaction_score >= 0.5:
            reasons.append("Similar to events you've saved")

        if breakdown.popularity_score >= 0.7:
            reasons.append("Trending in your area")

        if breakdown.recency_score == 1.0:
            reasons.append("Happening this weekend!")
        elif breakdown.recency_score >= 0.8:
            reasons.append("Coming up this week")

        if event.is_free:
            reasons.append("Free event")

        if event.is_verified:
            reasons.append("Verified host")

        return reasons
