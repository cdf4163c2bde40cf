"""
Recommendation service - fetches candidates, scores them, ranks, paginates
and caches the results.

Collaborator failures never propagate out of this module: a missing user
falls back to a default context, missing interactions to an empty history
and missing candidates to an empty result.
"""

import asyncio
from collections.abc import Iterable, Sequence

from eventrec.config import RankingConfig
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.api.recommendation_request import RecommendationRequest
from eventrec.models.api.recommendation_response import EventRecommendationResponse
from eventrec.models.domain.event_domain import CandidateEvent, InteractionRecord, UserContext
from eventrec.models.domain.recommendation_domain import RankedRecommendation
from eventrec.services.history import HistoryDispatcher
from eventrec.services.recommendation_cache import RecommendationCache
from eventrec.services.scoring import ScoringService, geo
from eventrec.services.sources import EventSource, InteractionSource, UserSource

logger = get_logger(__name__)

TRENDING_REASON = "Trending now"
SIMILAR_REASON = "Similar to this event"


def _sort_key(item: RankedRecommendation) -> tuple[float, str]:
    # Highest score first, event id breaks ties
    return (-item.score, item.event.id)


def _rank(items: list[RankedRecommendation], offset: int = 0) -> list[RankedRecommendation]:
    items.sort(key=_sort_key)
    for index, item in enumerate(items):
        item.rank = offset + index + 1
    return items


def _to_responses(items: Iterable[RankedRecommendation]) -> list[EventRecommendationResponse]:
    return [EventRecommendationResponse.from_ranked(item) for item in items]


def passes_filters(event: CandidateEvent, request: RecommendationRequest) -> bool:
    """Request filters that need no user context. Max distance is checked at scoring time."""
    if request.category_filter and (
        event.category is None or not event.category.matches(request.category_filter)
    ):
        return False

    if (
        request.max_price is not None
        and event.ticket_price is not None
        and event.ticket_price > request.max_price
    ):
        return False

    if request.free_only and not event.is_free:
        return False

    if request.verified_only and not event.is_verified:
        return False

    return True


class RecommendationService:
    """Ranking engine behind the recommendation API."""

    def __init__(
        self,
        *,
        scorer: ScoringService,
        cache: RecommendationCache,
        events: EventSource,
        interactions: InteractionSource,
        users: UserSource,
        config: RankingConfig,
        default_interests: Sequence[str] = (),
        history: HistoryDispatcher | None = None,
    ):
        self.scorer = scorer
        self.cache = cache
        self.events = events
        self.interactions = interactions
        self.users = users
        self.config = config
        self.default_interests = list(default_interests)
        self.history = history

    # ------------------------------------------------------------------
    # Personalized feed
    # ------------------------------------------------------------------

    async def get_personalized(
        self,
        user_id: str,
        request: RecommendationRequest,
        auth_token: str | None = None,
    ) -> list[EventRecommendationResponse]:
        page = max(request.page, 0)
        size = min(max(request.size, 1), self.config.max_page_size)

        # Page cache is keyed by user, page and size only, so filtered requests skip it
        use_cache = not request.has_filters

        if use_cache and not request.refresh:
            cached = await self.cache.get_user_page(user_id, page, size)
            if cached is not None:
                logger.info("Returning cached recommendations", user_id=user_id, page=page)
                return cached

        user, interactions = await self._load_user(user_id, auth_token)
        logger.info("Building recommendations", user_id=user_id, cold_start=user.is_cold_start())

        candidates = [
            event
            for event in await self._fetch_candidates(user, request)
            if passes_filters(event, request)
        ]
        if not candidates:
            logger.info("No candidate events for user", user_id=user_id)
            return []

        scored = self._score_for_user(
            candidates, user, interactions, max_distance_km=request.max_distance_km
        )
        scored.sort(key=_sort_key)

        start = page * size
        page_items = _rank(scored[start : start + size], offset=start)
        if not page_items:
            return []

        responses = _to_responses(page_items)
        if use_cache:
            await self.cache.set_user_page(user_id, page, size, responses)

        if self.history is not None:
            self.history.submit(user_id, page_items)

        logger.info(
            "Returning recommendations",
            user_id=user_id,
            page=page,
            count=len(responses),
            candidates=len(candidates),
        )
        return responses

    # ------------------------------------------------------------------
    # Derivative views
    # ------------------------------------------------------------------

    async def get_trending(self, limit: int) -> list[EventRecommendationResponse]:
        limit = max(limit, 1)

        cached = await self.cache.get_trending()
        if cached is not None:
            return cached[:limit]

        ranked = []
        for event in await self._upcoming_pool():
            try:
                score = self.scorer.trending_score(event)
            except Exception as e:
                logger.warning("candidate_skipped", event_id=event.id, error=str(e))
                continue
            ranked.append(RankedRecommendation(event=event, score=score, reasons=[TRENDING_REASON]))

        responses = _to_responses(_rank(ranked))
        if responses:
            await self.cache.set_trending(responses)
        return responses[:limit]

    async def get_similar(self, event_id: str, limit: int) -> list[EventRecommendationResponse]:
        limit = max(limit, 1)

        cached = await self.cache.get_similar(event_id)
        if cached is not None:
            return cached[:limit]

        pool = await self._upcoming_pool()
        target = next((event for event in pool if event.id == event_id), None)
        if target is None:
            logger.warning("Target event not found", event_id=event_id)
            return []
        if target.category is None:
            return []

        ranked = []
        for event in pool:
            if event.id == target.id or not target.category.matches(event.category_name):
                continue
            try:
                distance = geo.distance_km(target.location, event.location)
                score = self.scorer.similarity_score(event, distance)
            except Exception as e:
                logger.warning("candidate_skipped", event_id=event.id, error=str(e))
                continue
            ranked.append(
                RankedRecommendation(
                    event=event,
                    score=score,
                    reasons=[SIMILAR_REASON],
                    distance_km=distance if geo.is_real_distance(distance) else None,
                )
            )

        responses = _to_responses(_rank(ranked))
        if responses:
            await self.cache.set_similar(event_id, responses)
        return responses[:limit]

    async def get_by_category(
        self,
        user_id: str,
        category: str,
        limit: int,
        auth_token: str | None = None,
    ) -> list[EventRecommendationResponse]:
        limit = max(limit, 1)

        cached = await self.cache.get_category(user_id, category)
        if cached is not None:
            return cached[:limit]

        user, interactions = await self._load_user(user_id, auth_token)
        candidates = [
            event
            for event in await self._upcoming_pool()
            if event.category is not None and event.category.matches(category)
        ]
        if not candidates:
            return []

        responses = _to_responses(_rank(self._score_for_user(candidates, user, interactions)))
        if responses:
            await self.cache.set_category(user_id, category, responses)
        return responses[:limit]

    # ------------------------------------------------------------------
    # Cache invalidation
    # ------------------------------------------------------------------

    async def invalidate_user(self, user_id: str) -> int:
        removed = await self.cache.invalidate_user(user_id)
        logger.info("User recommendation cache invalidated", user_id=user_id, removed=removed)
        return removed

    async def invalidate_event(self, event_id: str) -> None:
        await self.cache.invalidate_similar(event_id)
        await self.cache.invalidate_trending()
        logger.info("Event recommendation cache invalidated", event_id=event_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _default_context(self, user_id: str) -> UserContext:
        return UserContext(user_id=user_id, interests=list(self.default_interests))

    async def _load_user(
        self, user_id: str, auth_token: str | None
    ) -> tuple[UserContext, list[InteractionRecord]]:
        user_result, interactions_result = await asyncio.gather(
            self.users.preferences(user_id, auth_token),
            self.interactions.for_user(user_id, auth_token),
            return_exceptions=True,
        )

        if not isinstance(user_result, UserContext):
            logger.warning(
                "User context unavailable, using defaults",
                user_id=user_id,
                error=repr(user_result),
            )
            user = self._default_context(user_id)
        else:
            user = user_result

        if isinstance(interactions_result, BaseException):
            logger.warning(
                "Interactions unavailable", user_id=user_id, error=str(interactions_result)
            )
            interactions = []
        else:
            interactions = list(interactions_result or [])

        return user.model_copy(update={"has_interactions": bool(interactions)}), interactions

    async def _fetch_candidates(
        self, user: UserContext, request: RecommendationRequest
    ) -> list[CandidateEvent]:
        if not user.has_location():
            return await self._upcoming_pool()

        radius = request.max_distance_km or self.config.default_radius_km
        try:
            return list(
                await self.events.nearby(user.location.latitude, user.location.longitude, radius)
            )
        except Exception as e:
            logger.error("Nearby events unavailable", user_id=user.user_id, error=str(e))
            return []

    async def _upcoming_pool(self) -> list[CandidateEvent]:
        try:
            return list(await self.events.upcoming(self.config.candidate_pool_size))
        except Exception as e:
            logger.error("Upcoming events unavailable", error=str(e))
            return []

    def _score_for_user(
        self,
        candidates: Iterable[CandidateEvent],
        user: UserContext,
        interactions: Sequence[InteractionRecord],
        max_distance_km: float | None = None,
    ) -> list[RankedRecommendation]:
        scored = []
        for event in candidates:
            try:
                distance = (
                    geo.distance_km(user.location, event.location) if user.has_location() else None
                )
                # Only enforceable against a known user location
                too_far = (
                    max_distance_km is not None
                    and distance is not None
                    and distance > max_distance_km
                )
                if too_far:
                    continue

                if user.is_cold_start():
                    breakdown = self.scorer.cold_start_score(event, user, distance)
                else:
                    breakdown = self.scorer.score(event, user, interactions, distance)

                scored.append(
                    RankedRecommendation(
                        event=event,
                        score=breakdown.final_score,
                        reasons=self.scorer.reasons(event, user, breakdown, distance),
                        breakdown=breakdown,
                        distance_km=distance if geo.is_real_distance(distance) else None,
                    )
                )
            except Exception as e:
                logger.warning(
                    "candidate_skipped",
                    event_id=getattr(event, "id", None),
                    user_id=user.user_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return scored
