import asyncio
import logging
from typing import Dict, Optional

from ..config import settings
from ..repositories.class_repository import ClassRepository
from ..repositories.interaction_repository import InteractionRepository
from ..repositories.user_repository import UserRepository
from ..schemas.interaction import EventType
from ..schemas.user import Segment, UserProfile
from ..services.recommendation_service import RecommendationService
from ..services.segmentation import compute_segment
from .base import PeriodicJob

logger = logging.getLogger(__name__)


class UserSegmentationJob(PeriodicJob):
    name = "user_segmentation"

    def __init__(
        self,
        user_repo: UserRepository,
        class_repo: ClassRepository,
        interaction_repo: InteractionRepository,
        recommendation_service: RecommendationService,
        stop_event: Optional[asyncio.Event] = None,
        interval_seconds: float = settings.SEGMENTATION_INTERVAL_SECONDS,
        startup_delay_seconds: float = settings.SEGMENTATION_STARTUP_DELAY_SECONDS,
        error_backoff_seconds: float = settings.SEGMENTATION_BACKOFF_SECONDS,
        lookback_days: int = settings.SEGMENTATION_LOOKBACK_DAYS,
        batch_size: int = settings.SEGMENTATION_BATCH_SIZE,
    ):
        super().__init__(interval_seconds, startup_delay_seconds, error_backoff_seconds, stop_event)
        self.user_repo = user_repo
        self.class_repo = class_repo
        self.interaction_repo = interaction_repo
        self.recommendation_service = recommendation_service
        self.lookback_days = lookback_days
        self.batch_size = batch_size

    async def compute_user_segment(self, user_id: str) -> Segment:
        interactions = await self.interaction_repo.get_recent(user_id, self.lookback_days)
        completed = [i for i in interactions if i.event_type == EventType.COMPLETE]
        categories = {}
        if completed:
            classes = await self.class_repo.get_by_ids(sorted({i.item_id for i in completed}))
            categories = {c.class_id: c.category for c in classes}
        return compute_segment(completed, categories, self.lookback_days)

    async def update_user_segment(self, user: UserProfile) -> bool:
        """Returns True if the segment changed. A change is always followed by cache invalidation."""
        segment = await self.compute_user_segment(user.user_id)
        if segment == user.segment:
            return False
        await self.user_repo.update_segment(user.user_id, segment)
        await self.recommendation_service.invalidate_cache(user.user_id)
        logger.info(
            "User segment changed",
            extra={"job": self.name, "user_id": user.user_id, "old_segment": user.segment.value, "new_segment": segment.value},
        )
        return True

    async def run_cycle(self) -> Dict[str, int]:
        user_ids = await self.user_repo.list_user_ids(self.batch_size)
        processed = changed = failed = 0
        for user_id in user_ids:
            if self.stopping:
                break
            processed += 1
            try:
                # Profiles are validated one at a time so a malformed row only fails its own user
                user = await self.user_repo.get_by_id(user_id)
                if user is not None and await self.update_user_segment(user):
                    changed += 1
            except Exception as e:
                failed += 1
                logger.error(
                    "Segmentation failed for user",
                    extra={"job": self.name, "user_id": user_id, "error": str(e)},
                    exc_info=True,
                )
        return {"processed": processed, "changed": changed, "failed": failed}
