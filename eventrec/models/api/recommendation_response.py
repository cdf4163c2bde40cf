# eventrec/models/api/recommendation_response.py
"""
Recommendation API response models.
These are also the objects stored in the recommendation cache.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from eventrec.models.domain.event_domain import Location
from eventrec.models.domain.recommendation_domain import RankedRecommendation


class ScoreBreakdownResponse(BaseModel):
    geo_score: float
    interest_score: float
    interaction_score: float
    popularity_score: float
    recency_score: float


class EventRecommendationResponse(BaseModel):
    """A ranked event with its score and the reasons it was recommended."""

    event_id: str
    title: str | None = None
    description: str | None = None
    category: str | None = None
    category_id: str | None = None

    venue: str | None = None
    address: str | None = None
    location: Location | None = None

    start_time: datetime | None = None
    end_time: datetime | None = None

    ticket_price: float | None = None
    ticket_limit: int | None = None
    tickets_sold: int | None = None
    has_available_tickets: bool = True

    image_url: str | None = None
    verified: bool | None = None

    score: float = Field(..., ge=0.0, le=1.0)
    distance_km: float | None = None
    reasons: list[str] = Field(default_factory=list)
    rank: int | None = None

    score_breakdown: ScoreBreakdownResponse | None = None

    @classmethod
    def from_ranked(cls, ranked: RankedRecommendation) -> "EventRecommendationResponse":
        event = ranked.event
        breakdown = None
        if ranked.breakdown is not None:
            breakdown = ScoreBreakdownResponse(
                geo_score=ranked.breakdown.geo_score,
                interest_score=ranked.breakdown.interest_score,
                interaction_score=ranked.breakdown.interaction_score,
                popularity_score=ranked.breakdown.popularity_score,
                recency_score=ranked.breakdown.recency_score,
            )

        return cls(
            event_id=event.id,
            title=event.title,
            description=event.description,
            category=event.category_name,
            category_id=event.category.id if event.category else None,
            venue=event.venue,
            address=event.address,
            location=event.location,
            start_time=event.start_time,
            end_time=event.end_time,
            ticket_price=float(event.ticket_price) if event.ticket_price is not None else None,
            ticket_limit=event.ticket_limit,
            tickets_sold=event.tickets_sold,
            has_available_tickets=event.has_available_tickets,
            image_url=event.image_url,
            verified=event.verified,
            score=ranked.score,
            distance_km=ranked.distance_km,
            reasons=list(ranked.reasons),
            rank=ranked.rank or None,
            score_breakdown=breakdown,
        )


class FeedbackResponse(BaseModel):
    success: bool
    updated: int
    message: str


class CacheInvalidationResponse(BaseModel):
    success: bool
    scope: str
    message: str


class HistoryEntryResponse(BaseModel):
    """A previously served recommendation and the feedback recorded against it."""

    model_config = ConfigDict(from_attributes=True)

    event_id: str
    score: float
    rank_position: int
    recommended_at: datetime
    algorithm_version: str
    reasons: list[str] = Field(default_factory=list)
    distance_km: float | None = None
    clicked: bool = False
    saved: bool = False
    converted: bool = False


RecommendationList = TypeAdapter(list[EventRecommendationResponse])
