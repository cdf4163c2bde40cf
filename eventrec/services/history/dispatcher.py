"""
Background dispatch of served recommendations to the history sink.

The engine calls ``submit`` on the request path; it never awaits the sink.
A single consumer task owned by the application lifespan drains the queue.
"""

import asyncio
import contextlib
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.domain.recommendation_domain import (
    RankedRecommendation,
    RecommendationRecord,
)
from eventrec.services.sources import HistorySink

logger = get_logger(__name__)

DEFAULT_DRAIN_TIMEOUT_S = 5.0


def _utc_now() -> datetime:
    return datetime.now(UTC)


def build_records(
    user_id: str,
    recommendations: Sequence[RankedRecommendation],
    *,
    algorithm_version: str,
    recommended_at: datetime,
) -> list[RecommendationRecord]:
    records = []
    for position, item in enumerate(recommendations, start=1):
        breakdown = item.breakdown
        records.append(
            RecommendationRecord(
                user_id=user_id,
                event_id=item.event.id,
                score=item.score,
                rank_position=item.rank or position,
                recommended_at=recommended_at,
                algorithm_version=algorithm_version,
                geo_score=breakdown.geo_score if breakdown else None,
                interest_score=breakdown.interest_score if breakdown else None,
                interaction_score=breakdown.interaction_score if breakdown else None,
                popularity_score=breakdown.popularity_score if breakdown else None,
                recency_score=breakdown.recency_score if breakdown else None,
                reasons=list(item.reasons),
                distance_km=item.distance_km,
            )
        )
    return records


class HistoryDispatcher:
    """Bounded work queue in front of a HistorySink."""

    def __init__(
        self,
        sink: HistorySink,
        *,
        algorithm_version: str = "v1.0",
        maxsize: int = 1000,
        drain_timeout_s: float = DEFAULT_DRAIN_TIMEOUT_S,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.sink = sink
        self.algorithm_version = algorithm_version
        self.drain_timeout_s = drain_timeout_s
        self._clock = clock
        self._queue: asyncio.Queue[list[RecommendationRecord]] = asyncio.Queue(maxsize=maxsize)
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, user_id: str, recommendations: Sequence[RankedRecommendation]) -> bool:
        """Queue a served list for persistence. Returns False if it was dropped."""
        if not recommendations:
            return False

        records = build_records(
            user_id,
            recommendations,
            algorithm_version=self.algorithm_version,
            recommended_at=self._clock(),
        )
        try:
            self._queue.put_nowait(records)
        except asyncio.QueueFull:
            logger.warning(
                "History queue full, dropping batch", user_id=user_id, count=len(records)
            )
            return False
        return True

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._consume(), name="history-dispatcher")
        logger.info("History dispatcher started")

    async def stop(self) -> None:
        """Drain what is already queued, bounded by drain_timeout_s, then cancel."""
        if not self.running:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.drain_timeout_s)
        except TimeoutError:
            logger.warning("History drain timed out", pending=self._queue.qsize())

        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("History dispatcher stopped")

    async def drain(self) -> None:
        """Wait until every queued batch has been handed to the sink."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            records = await self._queue.get()
            try:
                await self.sink.append(records)
                logger.debug(
                    "Recommendation history saved",
                    user_id=records[0].user_id,
                    count=len(records),
                )
            except Exception as e:
                logger.error(
                    "Failed to save recommendation history",
                    user_id=records[0].user_id,
                    count=len(records),
                    error=str(e),
                    error_type=type(e).__name__,
                )
            finally:
                self._queue.task_done()
