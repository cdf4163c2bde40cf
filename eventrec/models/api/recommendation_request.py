# eventrec/models/api/recommendation_request.py
"""
Recommendation API request models.
Used by routes for input validation.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class RecommendationRequest(BaseModel):
    """Query options for personalized recommendations."""

    page: int = Field(default=0, ge=0, description="Zero-based page number")
    size: int = Field(default=20, ge=1, le=100, description="Page size (1-100)")

    category_filter: str | None = Field(default=None, description="Only this category")
    max_distance_km: float | None = Field(default=None, gt=0, description="Maximum distance in km")
    max_price: Decimal | None = Field(default=None, ge=0, description="Maximum ticket price")
    free_only: bool | None = Field(default=None, description="Only free events")
    verified_only: bool | None = Field(default=None, description="Only verified events")

    refresh: bool = Field(default=False, description="Bypass the cache")

    @property
    def has_filters(self) -> bool:
        """True when any option narrows the result set beyond paging."""
        return (
            bool(self.category_filter)
            or self.max_distance_km is not None
            or self.max_price is not None
            or bool(self.free_only)
            or bool(self.verified_only)
        )


class FeedbackRequest(BaseModel):
    """Feedback on a previously served recommendation."""

    event_id: str = Field(..., min_length=1, description="Recommended event ID")
    kind: Literal["clicked", "saved", "converted"] = Field(..., description="Feedback type")
