"""
Collaborator contracts used by the ranking engine.

The engine only depends on these protocols; the HTTP clients in
``eventrec.services.clients`` and the Postgres history repository are the
production implementations, tests swap in in-memory fakes.
"""

from collections.abc import Sequence
from typing import Protocol

from eventrec.models.domain.event_domain import CandidateEvent, InteractionRecord, UserContext
from eventrec.models.domain.recommendation_domain import RecommendationRecord


class EventSource(Protocol):
    """Supplies candidate events. Implementations return [] instead of raising."""

    async def upcoming(self, limit: int) -> list[CandidateEvent]: ...

    async def nearby(
        self, latitude: float, longitude: float, radius_km: float
    ) -> list[CandidateEvent]: ...

    async def by_category(self, category_id: str, limit: int) -> list[CandidateEvent]: ...


class InteractionSource(Protocol):
    async def for_user(
        self, user_id: str, auth_token: str | None = None
    ) -> list[InteractionRecord]: ...


class UserSource(Protocol):
    async def preferences(self, user_id: str, auth_token: str | None = None) -> UserContext:
        """User context, or a deterministic default when the user service fails."""
        ...


class HistorySink(Protocol):
    async def append(self, records: Sequence[RecommendationRecord]) -> None: ...
