"""
Recommendation API Routes
HTTP endpoints over the ranking engine. The gateway authenticates callers and
forwards their id in X-User-Id; the bearer token is passed on to collaborators.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query, Request, status

from eventrec.db.helpers import DatabaseError
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.api.recommendation_request import FeedbackRequest, RecommendationRequest
from eventrec.models.api.recommendation_response import (
    CacheInvalidationResponse,
    EventRecommendationResponse,
    FeedbackResponse,
    HistoryEntryResponse,
)
from eventrec.services.history import RecommendationHistoryRepository
from eventrec.services.recommendation_service import RecommendationService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


# ----------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------


def get_recommendation_service(request: Request) -> RecommendationService:
    service = getattr(request.app.state, "recommendation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation service not ready",
        )
    return service


def get_history_repository(request: Request) -> RecommendationHistoryRepository | None:
    return getattr(request.app.state, "history_repository", None)


def get_caller_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id")
    return x_user_id.strip()


def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def get_recommendation_request(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    category_filter: str | None = Query(None, alias="categoryFilter"),
    max_distance_km: float | None = Query(None, alias="maxDistanceKm", gt=0),
    max_price: Decimal | None = Query(None, alias="maxPrice", ge=0),
    free_only: bool | None = Query(None, alias="freeOnly"),
    verified_only: bool | None = Query(None, alias="verifiedOnly"),
    refresh: bool = Query(False),
) -> RecommendationRequest:
    return RecommendationRequest(
        page=page,
        size=size,
        category_filter=category_filter,
        max_distance_km=max_distance_km,
        max_price=max_price,
        free_only=free_only,
        verified_only=verified_only,
        refresh=refresh,
    )


# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------


@router.get("/events", response_model=list[EventRecommendationResponse])
async def get_personalized_recommendations(
    options: RecommendationRequest = Depends(get_recommendation_request),
    user_id: str = Depends(get_caller_id),
    auth_token: str | None = Depends(get_bearer_token),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Personalized, paginated recommendations for the caller."""
    return await service.get_personalized(user_id, options, auth_token)


@router.get("/trending", response_model=list[EventRecommendationResponse])
async def get_trending_events(
    limit: int = Query(20, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return await service.get_trending(limit)


@router.get("/similar/{event_id}", response_model=list[EventRecommendationResponse])
async def get_similar_events(
    event_id: str = Path(..., min_length=1),
    limit: int = Query(10, ge=1, le=20),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return await service.get_similar(event_id, limit)


@router.get("/category/{category}", response_model=list[EventRecommendationResponse])
async def get_category_recommendations(
    category: str = Path(..., min_length=1),
    limit: int = Query(20, ge=1, le=50),
    user_id: str = Depends(get_caller_id),
    auth_token: str | None = Depends(get_bearer_token),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return await service.get_by_category(user_id, category, limit, auth_token)


@router.post("/cache/invalidate", response_model=CacheInvalidationResponse)
async def invalidate_user_cache(
    user_id: str = Depends(get_caller_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    removed = await service.invalidate_user(user_id)
    return CacheInvalidationResponse(
        success=True, scope="user", message=f"Removed {removed} cached entries"
    )


@router.post("/cache/invalidate/event/{event_id}", response_model=CacheInvalidationResponse)
async def invalidate_event_cache(
    event_id: str = Path(..., min_length=1),
    service: RecommendationService = Depends(get_recommendation_service),
):
    await service.invalidate_event(event_id)
    return CacheInvalidationResponse(
        success=True, scope="event", message="Similar and trending caches cleared"
    )


@router.post("/feedback", response_model=FeedbackResponse)
async def record_feedback(
    feedback: FeedbackRequest,
    user_id: str = Depends(get_caller_id),
    repository: RecommendationHistoryRepository | None = Depends(get_history_repository),
):
    """Mark the caller's latest recommendation of an event as clicked, saved or converted."""
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation history is disabled",
        )

    try:
        updated = await repository.mark_feedback(user_id, feedback.event_id, feedback.kind)
    except DatabaseError as e:
        logger.error(
            "Failed to record feedback",
            user_id=user_id,
            event_id=feedback.event_id,
            kind=feedback.kind,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation history unavailable",
        )

    if not updated:
        return FeedbackResponse(
            success=False, updated=0, message="No recommendation found for this event"
        )
    return FeedbackResponse(success=True, updated=updated, message=f"Marked as {feedback.kind}")


@router.get("/history", response_model=list[HistoryEntryResponse])
async def get_recommendation_history(
    limit: int = Query(50, ge=1, le=100),
    user_id: str = Depends(get_caller_id),
    repository: RecommendationHistoryRepository | None = Depends(get_history_repository),
):
    """Most recent recommendations served to the caller, newest first."""
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation history is disabled",
        )

    try:
        records = await repository.fetch_recent(user_id, limit)
    except DatabaseError as e:
        logger.error("Failed to load recommendation history", user_id=user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation history unavailable",
        )

    return [HistoryEntryResponse.model_validate(record) for record in records]


@router.get("/health")
async def recommendations_health():
    return {"status": "UP", "service": "recommendation-service"}
