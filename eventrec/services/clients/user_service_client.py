"""
User service client: preferences used for personalization.
"""

from pydantic import ValidationError

from eventrec.config import settings
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.domain.event_domain import UserContext

from .base import ServiceClient

logger = get_logger(__name__)


class UserServiceClient(ServiceClient):
    """HTTP implementation of UserSource."""

    service_name = "user-service"

    def __init__(
        self,
        base_url: str | None = None,
        default_interests: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(base_url or settings.USER_SERVICE_URL, **kwargs)
        if default_interests is None:
            default_interests = settings.COLD_START_DEFAULT_INTERESTS
        self.default_interests = list(default_interests)

    def default_context(self, user_id: str) -> UserContext:
        """No location, default interests, no interactions."""
        return UserContext(user_id=user_id, interests=list(self.default_interests))

    async def preferences(self, user_id: str, auth_token: str | None = None) -> UserContext:
        payload = await self.get_json(f"/api/users/{user_id}", auth_token=auth_token)
        if not isinstance(payload, dict):
            logger.info("Using default preferences", user_id=user_id)
            return self.default_context(user_id)

        data = {**payload, "userId": user_id}
        if data.get("interests") is None:
            data.pop("interests", None)

        try:
            user = UserContext.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Invalid user payload, using default preferences",
                user_id=user_id,
                error_count=e.error_count(),
            )
            return self.default_context(user_id)

        updates: dict = {"has_interactions": False}
        if not user.interests:
            updates["interests"] = list(self.default_interests)
        if user.location is not None and not user.location.is_valid():
            updates["location"] = None
        return user.model_copy(update=updates)
