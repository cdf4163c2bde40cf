"""
Postgres-backed recommendation history.

Append-only from the serving side; feedback flags are set later when the
user clicks, saves or buys a recommended event.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Literal

from psycopg.types.json import Jsonb

from eventrec.db.helpers import execute_many, execute_query, fetch_all
from eventrec.db.pool import DatabasePoolManager
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.domain.recommendation_domain import RecommendationRecord

logger = get_logger(__name__)

FeedbackKind = Literal["clicked", "saved", "converted"]

HISTORY_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS recommendation_history (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    event_id TEXT NOT NULL,
    score DOUBLE PRECISION NOT NULL,
    rank_position INTEGER NOT NULL,
    algorithm_version TEXT NOT NULL,
    geo_score DOUBLE PRECISION,
    interest_score DOUBLE PRECISION,
    interaction_score DOUBLE PRECISION,
    popularity_score DOUBLE PRECISION,
    recency_score DOUBLE PRECISION,
    reasons JSONB NOT NULL DEFAULT '[]'::jsonb,
    distance_km DOUBLE PRECISION,
    recommended_at TIMESTAMPTZ NOT NULL,
    clicked BOOLEAN NOT NULL DEFAULT FALSE,
    clicked_at TIMESTAMPTZ,
    saved BOOLEAN NOT NULL DEFAULT FALSE,
    saved_at TIMESTAMPTZ,
    converted BOOLEAN NOT NULL DEFAULT FALSE,
    converted_at TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS idx_recommendation_history_user_event
    ON recommendation_history (user_id, event_id, recommended_at DESC)
"""

INSERT_RECORD = """
INSERT INTO recommendation_history (
    user_id, event_id, score, rank_position, algorithm_version,
    geo_score, interest_score, interaction_score, popularity_score, recency_score,
    reasons, distance_km, recommended_at
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

# Column names cannot be parameters; one statement per feedback kind
MARK_FEEDBACK: dict[str, str] = {
    kind: f"""
UPDATE recommendation_history
SET {kind} = TRUE, {kind}_at = %s
WHERE id = (
    SELECT id FROM recommendation_history
    WHERE user_id = %s AND event_id = %s
    ORDER BY recommended_at DESC
    LIMIT 1
)
"""
    for kind in ("clicked", "saved", "converted")
}

SELECT_RECENT = """
SELECT user_id, event_id, score, rank_position, algorithm_version,
       geo_score, interest_score, interaction_score, popularity_score, recency_score,
       reasons, distance_km, recommended_at,
       clicked, clicked_at, saved, saved_at, converted, converted_at
FROM recommendation_history
WHERE user_id = %s
ORDER BY recommended_at DESC, rank_position ASC
LIMIT %s
"""


def _insert_params(record: RecommendationRecord) -> tuple:
    return (
        record.user_id,
        record.event_id,
        record.score,
        record.rank_position,
        record.algorithm_version,
        record.geo_score,
        record.interest_score,
        record.interaction_score,
        record.popularity_score,
        record.recency_score,
        Jsonb(list(record.reasons)),
        record.distance_km,
        record.recommended_at,
    )


class RecommendationHistoryRepository:
    """HistorySink that writes to the recommendation_history table."""

    def __init__(self, pool: DatabasePoolManager | None = None):
        self.pool = pool

    async def ensure_schema(self) -> None:
        for statement in HISTORY_TABLE_DDL.split(";"):
            if statement.strip():
                await execute_query(statement, pool=self.pool)

    async def append(self, records: Sequence[RecommendationRecord]) -> None:
        """Insert a served batch in one transaction. Raises DatabaseError on failure."""
        if not records:
            return
        written = await execute_many(
            INSERT_RECORD, [_insert_params(record) for record in records], pool=self.pool
        )
        logger.debug("History batch written", user_id=records[0].user_id, count=written)

    async def mark_feedback(
        self,
        user_id: str,
        event_id: str,
        kind: FeedbackKind,
        at: datetime | None = None,
    ) -> int:
        """Flag the most recent recommendation of event_id to user_id. Returns rows updated."""
        query = MARK_FEEDBACK.get(kind)
        if query is None:
            raise ValueError(f"Unknown feedback kind: {kind}")

        updated = await execute_query(
            query, (at or datetime.now(UTC), user_id, event_id), pool=self.pool
        )
        logger.info(
            "Recommendation feedback recorded",
            user_id=user_id,
            event_id=event_id,
            kind=kind,
            updated=updated,
        )
        return updated

    async def fetch_recent(self, user_id: str, limit: int = 50) -> list[RecommendationRecord]:
        rows = await fetch_all(SELECT_RECENT, (user_id, limit), pool=self.pool)
        return [
            RecommendationRecord(**{**row, "reasons": list(row.get("reasons") or [])})
            for row in rows
        ]
