import json
import logging
from typing import List, Optional

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from ..config import CACHE_TTL_SECONDS
from ..exceptions import CacheUnavailableError
from ..schemas.recommendation import RecommendationItem

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(List[RecommendationItem])


def cache_key(user_id: str) -> str:
    return f"rec:{user_id}"


class RecommendationCache:
    """
    Per-user recommendation lists in Redis: rec:{user_id} -> JSON list, TTL-bound.

    Reads and writes degrade to a miss when Redis is down; deletes do not,
    since a silently failed invalidation would keep serving stale results.
    """

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = CACHE_TTL_SECONDS):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    async def get(self, user_id: str) -> Optional[List[RecommendationItem]]:
        try:
            cached = await self.redis_client.get(cache_key(user_id))
        except RedisError as e:
            logger.warning("Cache read failed", extra={"user_id": user_id, "error": str(e)})
            return None
        if cached is None:
            return None
        try:
            return _items_adapter.validate_json(cached)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry", extra={"user_id": user_id})
            return None

    async def set(self, user_id: str, items: List[RecommendationItem]) -> bool:
        payload = json.dumps([item.model_dump(mode="json", by_alias=True) for item in items])
        try:
            await self.redis_client.setex(cache_key(user_id), self.ttl_seconds, payload)
            return True
        except RedisError as e:
            logger.warning("Cache write failed", extra={"user_id": user_id, "error": str(e)})
            return False

    async def delete(self, user_id: str):
        try:
            await self.redis_client.delete(cache_key(user_id))
        except RedisError as e:
            raise CacheUnavailableError(f"Could not invalidate cache for user {user_id}") from e
