# eventrec/services/recommendation_cache.py
"""
Recommendation cache over Redis.

Lists of EventRecommendationResponse are stored as JSON arrays under
``recommendations:*`` keys. Every failure (store, JSON, schema) reads as a
miss; nothing here raises to the caller.
"""

from typing import Protocol

from pydantic import ValidationError

from eventrec.config import CacheTTLs
from eventrec.infrastructure.observability.logging import get_logger
from eventrec.models.api.recommendation_response import (
    EventRecommendationResponse,
    RecommendationList,
)

logger = get_logger(__name__)

KEY_PREFIX = "recommendations:"


class CacheStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_pattern(self, pattern: str) -> int: ...


def user_key(user_id: str, page: int, size: int) -> str:
    return f"{KEY_PREFIX}user:{user_id}:page:{page}:size:{size}"


def trending_key() -> str:
    return f"{KEY_PREFIX}trending"


def similar_key(event_id: str) -> str:
    return f"{KEY_PREFIX}similar:{event_id}"


def category_key(user_id: str, category: str) -> str:
    return f"{KEY_PREFIX}category:{user_id}:{category.strip().lower()}"


class RecommendationCache:
    def __init__(self, store: CacheStore, ttls: CacheTTLs):
        self.store = store
        self.ttls = ttls

    async def get(self, key: str) -> list[EventRecommendationResponse] | None:
        """Cached list for key, or None on miss. Empty lists count as a miss."""
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

        if not raw:
            return None

        try:
            cached = RecommendationList.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            return None

        if not cached:
            return None

        logger.debug("Cache hit", key=key, count=len(cached))
        return cached

    async def set(self, key: str, value: list[EventRecommendationResponse], ttl_s: int) -> None:
        try:
            payload = RecommendationList.dump_json(value).decode()
            stored = await self.store.set_with_ttl(key, payload, ttl_s)
            if not stored:
                logger.warning("Cache write not acknowledged", key=key)
        except Exception as e:
            logger.warning("Cache write failed", key=key, error=str(e))

    async def invalidate(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except Exception as e:
            logger.warning("Cache invalidation failed", key=key, error=str(e))

    async def invalidate_pattern(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the number removed."""
        try:
            removed = await self.store.delete_pattern(f"{prefix}*")
        except Exception as e:
            logger.warning("Cache pattern invalidation failed", prefix=prefix, error=str(e))
            return 0

        logger.info("Cache entries invalidated", prefix=prefix, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def get_user_page(self, user_id: str, page: int, size: int):
        return await self.get(user_key(user_id, page, size))

    async def set_user_page(self, user_id: str, page: int, size: int, value) -> None:
        await self.set(user_key(user_id, page, size), value, self.ttls.user)

    async def get_trending(self):
        return await self.get(trending_key())

    async def set_trending(self, value) -> None:
        await self.set(trending_key(), value, self.ttls.trending)

    async def get_similar(self, event_id: str):
        return await self.get(similar_key(event_id))

    async def set_similar(self, event_id: str, value) -> None:
        await self.set(similar_key(event_id), value, self.ttls.similar)

    async def get_category(self, user_id: str, category: str):
        return await self.get(category_key(user_id, category))

    async def set_category(self, user_id: str, category: str, value) -> None:
        await self.set(category_key(user_id, category), value, self.ttls.category)

    # ------------------------------------------------------------------
    # Grouped invalidation
    # ------------------------------------------------------------------

    async def invalidate_user(self, user_id: str) -> int:
        """Drop every page and every category list cached for the user."""
        removed = await self.invalidate_pattern(f"{KEY_PREFIX}user:{user_id}:")
        removed += await self.invalidate_pattern(f"{KEY_PREFIX}category:{user_id}:")
        return removed

    async def invalidate_trending(self) -> None:
        await self.invalidate(trending_key())

    async def invalidate_similar(self, event_id: str) -> None:
        await self.invalidate(similar_key(event_id))
