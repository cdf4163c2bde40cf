"""
Domain models produced by the ranking engine.

Lightweight dataclasses shared by the scorer, the engine and the history
recorder. They carry no behaviour beyond small conversions.
"""

from dataclasses import dataclass, field
from datetime import datetime

from eventrec.models.domain.event_domain import CandidateEvent


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    geo_score: float
    interest_score: float
    interaction_score: float
    popularity_score: float
    recency_score: float
    final_score: float

    def components(self) -> dict[str, float]:
        return {
            "geo": self.geo_score,
            "interest": self.interest_score,
            "interaction": self.interaction_score,
            "popularity": self.popularity_score,
            "recency": self.recency_score,
        }


@dataclass(slots=True)
class RankedRecommendation:
    event: CandidateEvent
    score: float
    reasons: list[str]
    breakdown: ScoreBreakdown | None = None
    distance_km: float | None = None
    rank: int = 0


@dataclass(slots=True)
class RecommendationRecord:
    """One served recommendation, persisted for feedback-driven evaluation."""

    user_id: str
    event_id: str
    score: float
    rank_position: int
    recommended_at: datetime
    algorithm_version: str
    geo_score: float | None = None
    interest_score: float | None = None
    interaction_score: float | None = None
    popularity_score: float | None = None
    recency_score: float | None = None
    reasons: list[str] = field(default_factory=list)
    distance_km: float | None = None

    # Feedback, updated after creation
    clicked: bool = False
    clicked_at: datetime | None = None
    saved: bool = False
    saved_at: datetime | None = None
    converted: bool = False
    converted_at: datetime | None = None
