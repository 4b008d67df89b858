import asyncio
import logging
from typing import Dict, Optional

from ..config import settings, DEFAULT_RECOMMENDATION_LIMIT
from ..repositories.user_repository import UserRepository
from ..services.recommendation_service import RecommendationService
from .base import PeriodicJob

logger = logging.getLogger(__name__)


class BatchRecommendationRefresher(PeriodicJob):
    """
    Regenerates recommendations for a bounded batch of users every cycle.
    Active mode picks users with any interaction in the trailing window;
    otherwise every user up to the batch size.
    """
    name = "recommendation_refresher"

    def __init__(
        self,
        user_repo: UserRepository,
        recommendation_service: RecommendationService,
        stop_event: Optional[asyncio.Event] = None,
        interval_seconds: float = settings.REFRESHER_INTERVAL_SECONDS,
        startup_delay_seconds: float = settings.REFRESHER_STARTUP_DELAY_SECONDS,
        error_backoff_seconds: float = settings.REFRESHER_BACKOFF_SECONDS,
        batch_size: int = settings.REFRESHER_BATCH_SIZE,
        active_users_only: bool = settings.REFRESHER_ACTIVE_USERS_ONLY,
        active_window_days: int = settings.REFRESHER_ACTIVE_WINDOW_DAYS,
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ):
        super().__init__(interval_seconds, startup_delay_seconds, error_backoff_seconds, stop_event)
        self.user_repo = user_repo
        self.recommendation_service = recommendation_service
        self.batch_size = batch_size
        self.active_users_only = active_users_only
        self.active_window_days = active_window_days
        self.limit = limit

    async def run_cycle(self) -> Dict[str, int]:
        if self.active_users_only:
            user_ids = await self.user_repo.list_active_user_ids(self.active_window_days, self.batch_size)
        else:
            user_ids = await self.user_repo.list_user_ids(self.batch_size)

        processed = succeeded = failed = 0
        for user_id in user_ids:
            if self.stopping:
                break
            processed += 1
            try:
                # Batch runs skip the popular fallback so failures are counted
                await self.recommendation_service.generate_recommendations(user_id, self.limit, fallback=False)
                succeeded += 1
            except Exception as e:
                failed += 1
                logger.error(
                    "Recommendation refresh failed for user",
                    extra={"job": self.name, "user_id": user_id, "error": str(e)},
                    exc_info=True,
                )

        return {"processed": processed, "succeeded": succeeded, "failed": failed}
