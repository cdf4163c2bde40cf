"""
Domain models for candidate events, user context and interactions.

These mirror the payloads served by the event and user services. Field
names are snake_case in Python and camelCase on the wire.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    coerce_numbers_to_str=True,
)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Category(BaseModel):
    """Event category. Always an (id, name) pair, never a bare string."""

    model_config = WIRE_CONFIG

    id: str | None = None
    name: str

    def matches(self, name: str | None) -> bool:
        return bool(name) and self.name.strip().lower() == name.strip().lower()


class Location(BaseModel):
    model_config = WIRE_CONFIG

    latitude: float | None = None
    longitude: float | None = None

    def is_valid(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and -90 <= self.latitude <= 90
            and -180 <= self.longitude <= 180
        )


class CandidateEvent(BaseModel):
    """An upcoming event eligible for ranking."""

    model_config = WIRE_CONFIG

    id: str
    title: str | None = None
    description: str | None = None
    category: Category | None = None
    host_id: str | None = None

    venue: str | None = None
    address: str | None = None
    location: Location | None = None

    start_time: datetime | None = None
    end_time: datetime | None = None

    ticket_price: Decimal | None = None
    ticket_limit: int | None = None
    tickets_sold: int | None = None
    remaining_tickets: int | None = None

    image_url: str | None = None
    verified: bool | None = None
    status: str | None = None

    # Aggregate interaction counters used for popularity
    view_count: int = 0
    save_count: int = 0
    rsvp_count: int = 0
    share_count: int = 0

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, value: Any) -> Any:
        # Some upstream payloads send the category name as a plain string
        if isinstance(value, str):
            return {"name": value} if value.strip() else None
        return value

    @field_validator("view_count", "save_count", "rsvp_count", "share_count", mode="before")
    @classmethod
    def default_counter(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def is_free(self) -> bool:
        return self.ticket_price is None or self.ticket_price == 0

    @property
    def is_verified(self) -> bool:
        return self.verified is True

    @property
    def has_available_tickets(self) -> bool:
        if self.ticket_limit is None or self.tickets_sold is None:
            return True
        return self.tickets_sold < self.ticket_limit

    @property
    def total_interactions(self) -> int:
        return self.view_count + self.save_count + self.rsvp_count + self.share_count


class UserContext(BaseModel):
    """User preferences relevant to ranking."""

    model_config = WIRE_CONFIG

    user_id: str
    username: str | None = None
    email: str | None = None
    city: str | None = None
    location: Location | None = None
    interests: list[str] = Field(default_factory=list)
    has_interactions: bool = False

    def is_cold_start(self) -> bool:
        return not self.has_interactions

    def has_location(self) -> bool:
        return self.location is not None and self.location.is_valid()

    def has_interests(self) -> bool:
        return bool(self.interests)


class InteractionType(str, Enum):
    VIEW = "VIEW"
    SAVE = "SAVE"
    SHARE = "SHARE"
    RSVP = "RSVP"
    BUY = "BUY"

    @property
    def weight(self) -> float:
        return INTERACTION_WEIGHTS[self]

    @property
    def is_strong_signal(self) -> bool:
        return self in STRONG_SIGNALS


INTERACTION_WEIGHTS: dict[InteractionType, float] = {
    InteractionType.BUY: 1.0,
    InteractionType.RSVP: 0.8,
    InteractionType.SAVE: 0.6,
    InteractionType.SHARE: 0.4,
    InteractionType.VIEW: 0.2,
}

STRONG_SIGNALS = frozenset({InteractionType.SAVE, InteractionType.RSVP, InteractionType.BUY})


class InteractionRecord(BaseModel):
    """A single user interaction with an event, tagged with the event category."""

    model_config = WIRE_CONFIG

    id: str | None = None
    user_id: str | None = None
    event_id: str | None = None
    type: str
    category: str | None = None
    created_at: datetime | None = None

    @property
    def interaction_type(self) -> InteractionType | None:
        try:
            return InteractionType(self.type.strip().upper())
        except ValueError:
            return None

    @property
    def weight(self) -> float:
        interaction_type = self.interaction_type
        return interaction_type.weight if interaction_type else 0.0

    @property
    def is_strong_signal(self) -> bool:
        interaction_type = self.interaction_type
        return bool(interaction_type and interaction_type.is_strong_signal)
