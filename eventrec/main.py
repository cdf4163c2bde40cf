# eventrec/main.py
"""
Application entry point: wiring of the ranking engine and its collaborators,
plus resource lifecycle for Redis, the history pool and the history worker.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from eventrec.config import settings
from eventrec.db.pool import db_pool
from eventrec.infrastructure.observability.logging import get_logger, log_request, setup_logging
from eventrec.routes import health, recommendations
from eventrec.services.clients import EventServiceClient, UserServiceClient
from eventrec.services.history import HistoryDispatcher, RecommendationHistoryRepository
from eventrec.services.recommendation_cache import RecommendationCache
from eventrec.services.recommendation_service import RecommendationService
from eventrec.services.redis_client import fast_redis
from eventrec.services.scoring import ScoringService

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


async def _start_history() -> tuple[RecommendationHistoryRepository, HistoryDispatcher] | None:
    """History is optional: a database failure disables it instead of failing startup."""
    if not settings.HISTORY_ENABLED:
        logger.info("Recommendation history disabled by configuration")
        return None

    try:
        await db_pool.initialize()
        repository = RecommendationHistoryRepository(db_pool)
        await repository.ensure_schema()
    except Exception as e:
        logger.error("Recommendation history unavailable, continuing without it", error=str(e))
        await db_pool.close()
        return None

    dispatcher = HistoryDispatcher(
        repository,
        algorithm_version=settings.HISTORY_ALGORITHM_VERSION,
        maxsize=settings.HISTORY_QUEUE_MAXSIZE,
    )
    await dispatcher.start()
    return repository, dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        await fast_redis.initialize()
    except RuntimeError as e:
        # Cache is an optimization; requests recompute until Redis comes back
        logger.warning("Redis unavailable at startup, serving uncached", error=str(e))

    history = await _start_history()
    repository, dispatcher = history if history else (None, None)

    event_client = EventServiceClient()
    user_client = UserServiceClient(default_interests=settings.COLD_START_DEFAULT_INTERESTS)

    app.state.history_repository = repository
    app.state.recommendation_service = RecommendationService(
        scorer=ScoringService(settings.scoring_weights()),
        cache=RecommendationCache(fast_redis, settings.cache_ttls()),
        events=event_client,
        interactions=event_client,
        users=user_client,
        config=settings.ranking_config(),
        default_interests=settings.COLD_START_DEFAULT_INTERESTS,
        history=dispatcher,
    )
    logger.info("Recommendation service ready", history_enabled=dispatcher is not None)

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    if dispatcher is not None:
        try:
            await dispatcher.stop()
        except Exception as e:
            logger.error("Error stopping history dispatcher", error=str(e))
            shutdown_errors.append(f"History: {e}")

    for name, client in (("event-service", event_client), ("user-service", user_client)):
        try:
            await client.close()
        except Exception as e:
            logger.error("Error closing HTTP client", client=name, error=str(e))
            shutdown_errors.append(f"{name}: {e}")

    await fast_redis.close()
    await db_pool.close()

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Event Recommendations",
    description="Scores and ranks upcoming events for each user",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(recommendations.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
        user_id=request.headers.get("x-user-id"),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
