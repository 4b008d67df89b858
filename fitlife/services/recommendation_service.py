import logging
import time
from typing import Callable, List, Sequence

from ..repositories.user_repository import UserRepository
from ..repositories.class_repository import ClassRepository
from ..repositories.interaction_repository import InteractionRepository
from ..repositories.recommendation_repository import RecommendationRepository
from ..schemas.common import utcnow
from ..schemas.recommendation import RecommendationItem, RecommendationRecord
from ..exceptions import CacheUnavailableError
from ..config import (
    CANDIDATE_POOL_SIZE,
    DEFAULT_RECOMMENDATION_LIMIT,
    FALLBACK_SCORE,
    INTERACTION_HISTORY_DAYS,
    MAX_RECOMMENDATION_LIMIT,
    RECENT_RECOMMENDATION_MINUTES,
)
from .cache import RecommendationCache
from .scoring import ScoredClass, score_class

logger = logging.getLogger(__name__)

POPULAR_REASON = "Popular class this week"


class RecommendationService:
    def __init__(
        self,
        user_repo: UserRepository,
        class_repo: ClassRepository,
        interaction_repo: InteractionRepository,
        recommendation_repo: RecommendationRepository,
        cache: RecommendationCache,
        scorer: Callable[..., ScoredClass] = score_class,
    ):
        self.user_repo = user_repo
        self.class_repo = class_repo
        self.interaction_repo = interaction_repo
        self.recommendation_repo = recommendation_repo
        self.cache = cache
        self.scorer = scorer

    async def get_recommendations(self, user_id: str, limit: int = DEFAULT_RECOMMENDATION_LIMIT) -> List[RecommendationItem]:
        """
        Get ranked class recommendations for a user
        Strategy:
        1. Redis cache (rec:{user_id})
        2. Rows persisted within the freshness window, hydrated and written back to the cache
        3. Fresh generation (which itself falls back to popular classes)
        """
        cached = await self.cache.get(user_id)
        if cached is not None:
            logger.debug("Cache hit", extra={"user_id": user_id})
            return cached[:limit]

        persisted = await self._load_persisted(user_id)
        if persisted:
            await self.cache.set(user_id, persisted)
            return persisted[:limit]

        return await self.generate_recommendations(user_id, limit)

    async def generate_recommendations(
        self, user_id: str, limit: int = DEFAULT_RECOMMENDATION_LIMIT, fallback: bool = True
    ) -> List[RecommendationItem]:
        """
        Score the candidate pool, persist the top `limit` and write them through to the cache.
        With `fallback=False` failures propagate instead of serving popular classes.
        """
        start_time = time.time()
        try:
            user = await self.user_repo.get_by_id(user_id)
            if user is None:
                logger.warning("Recommendations requested for unknown user", extra={"user_id": user_id})
                return []

            candidates = await self.class_repo.list_upcoming(CANDIDATE_POOL_SIZE)
            if not candidates:
                logger.info("No upcoming classes to recommend", extra={"user_id": user_id})
                return []

            interactions = await self.interaction_repo.get_recent(user_id, INTERACTION_HISTORY_DAYS)

            now = utcnow()
            scored = [(c, self.scorer(user, c, interactions, now)) for c in candidates]
            # Stable: equal scores keep candidate pool order (start_time, class_id)
            scored.sort(key=lambda pair: pair[1].score, reverse=True)

            items = [
                RecommendationItem(
                    rank=rank,
                    score=round(result.score, 2),
                    reason=result.reason,
                    item=fitness_class,
                    generated_at=now,
                )
                for rank, (fitness_class, result) in enumerate(scored[:limit], start=1)
            ]

            await self.recommendation_repo.replace_for_user(user_id, [item.to_record(user_id) for item in items])
            await self.cache.set(user_id, items)

            logger.info(
                "Recommendations generated",
                extra={
                    "user_id": user_id,
                    "candidates": len(candidates),
                    "count": len(items),
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                },
            )
            return items
        except Exception:
            if not fallback:
                raise
            logger.error("Recommendation generation failed, serving popular classes", extra={"user_id": user_id}, exc_info=True)
            return await self._popular_fallback(user_id, limit)

    async def refresh_recommendations(self, user_id: str, limit: int = DEFAULT_RECOMMENDATION_LIMIT) -> List[RecommendationItem]:
        try:
            await self.invalidate_cache(user_id)
        except CacheUnavailableError as e:
            # Generation overwrites the entry anyway once the cache is back
            logger.warning("Cache invalidation failed during refresh", extra={"user_id": user_id, "error": str(e)})
        return await self.generate_recommendations(user_id, limit)

    async def invalidate_cache(self, user_id: str):
        """Drop the cached list for a user. Absent keys are fine."""
        await self.cache.delete(user_id)
        logger.debug("Cache invalidated", extra={"user_id": user_id})

    async def _load_persisted(self, user_id: str) -> List[RecommendationItem]:
        try:
            records = await self.recommendation_repo.get_recent(
                user_id, RECENT_RECOMMENDATION_MINUTES, MAX_RECOMMENDATION_LIMIT
            )
            if not records:
                return []
            return await self._hydrate(records)
        except Exception:
            logger.warning("Persisted recommendations unavailable", extra={"user_id": user_id}, exc_info=True)
            return []

    async def _hydrate(self, records: Sequence[RecommendationRecord]) -> List[RecommendationItem]:
        """Attach class details; rows whose class is gone are skipped and ranks closed up."""
        classes = await self.class_repo.get_by_ids([r.item_id for r in records])
        by_id = {c.class_id: c for c in classes}
        items = []
        for record in sorted(records, key=lambda r: r.rank):
            fitness_class = by_id.get(record.item_id)
            if fitness_class is None:
                continue
            items.append(
                RecommendationItem(
                    rank=len(items) + 1,
                    score=record.score,
                    reason=record.reason,
                    item=fitness_class,
                    generated_at=record.generated_at,
                )
            )
        return items

    async def _popular_fallback(self, user_id: str, limit: int) -> List[RecommendationItem]:
        """Never raises. Results are neither persisted nor cached."""
        try:
            classes = await self.class_repo.list_popular(limit)
            now = utcnow()
            return [
                RecommendationItem(
                    rank=rank,
                    score=FALLBACK_SCORE,
                    reason=POPULAR_REASON,
                    item=fitness_class,
                    generated_at=now,
                )
                for rank, fitness_class in enumerate(classes, start=1)
            ]
        except Exception:
            logger.error("Popular fallback failed", extra={"user_id": user_id}, exc_info=True)
            return []
