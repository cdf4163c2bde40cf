"""
Event service client: candidate events and user interactions.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from eventrec.config import settings
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.domain.event_domain import CandidateEvent, InteractionRecord

from .base import ServiceClient

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate_items(items: Any, model: type[ModelT], kind: str) -> list[ModelT]:
    """Validate each item on its own; malformed items are skipped."""
    if not isinstance(items, list):
        logger.warning("Expected a JSON list from event service", kind=kind)
        return []

    parsed: list[ModelT] = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed item",
                kind=kind,
                item_id=item.get("id") if isinstance(item, dict) else None,
                error_count=e.error_count(),
            )
    return parsed


def _page_content(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("content") or []
    return payload


class EventServiceClient(ServiceClient):
    """HTTP implementation of EventSource and InteractionSource."""

    service_name = "event-service"

    def __init__(self, base_url: str | None = None, **kwargs):
        super().__init__(base_url or settings.EVENT_SERVICE_URL, **kwargs)

    async def upcoming(self, limit: int) -> list[CandidateEvent]:
        payload = await self.get_json("/api/events/upcoming", params={"page": 0, "size": limit})
        if payload is None:
            return []
        return _validate_items(_page_content(payload), CandidateEvent, "event")

    async def nearby(
        self, latitude: float, longitude: float, radius_km: float
    ) -> list[CandidateEvent]:
        payload = await self.get_json(
            "/api/events/nearby",
            params={"latitude": latitude, "longitude": longitude, "radiusKm": radius_km},
        )
        if payload is None:
            return []
        return _validate_items(payload, CandidateEvent, "event")

    async def by_category(self, category_id: str, limit: int) -> list[CandidateEvent]:
        payload = await self.get_json(
            f"/api/events/category/{category_id}", params={"page": 0, "size": limit}
        )
        if payload is None:
            return []
        return _validate_items(_page_content(payload), CandidateEvent, "event")

    async def for_user(
        self, user_id: str, auth_token: str | None = None
    ) -> list[InteractionRecord]:
        payload = await self.get_json(f"/api/interactions/user/{user_id}", auth_token=auth_token)
        if payload is None:
            logger.warning("Interactions unavailable, continuing without them", user_id=user_id)
            return []
        return _validate_items(payload, InteractionRecord, "interaction")
