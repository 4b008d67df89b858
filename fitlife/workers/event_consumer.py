import asyncio
import logging
from typing import List, Optional

from aiokafka import AIOKafkaConsumer
from aiokafka.structs import ConsumerRecord, TopicPartition
from aiokafka.errors import KafkaError
from pydantic import ValidationError

from ..config import settings
from ..repositories.interaction_repository import InteractionRepository
from ..schemas.interaction import EventType, InteractionEvent
from ..services.recommendation_service import RecommendationService
from .base import BackgroundWorker

logger = logging.getLogger(__name__)


def create_consumer() -> AIOKafkaConsumer:
    return AIOKafkaConsumer(
        settings.KAFKA_TOPIC_EVENTS,
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id=settings.KAFKA_CONSUMER_GROUP,
        enable_auto_commit=False,
        auto_offset_reset="earliest",
    )


class EventConsumer(BackgroundWorker):
    """
    Consumes interaction events and appends them to the interaction log.

    Per message: decode -> persist -> (Book only) invalidate cache -> commit.
    Undecodable messages are committed and dropped. Any other failure leaves the
    offset uncommitted, seeks the partition back to it and backs off, so the
    message is redelivered and later messages of that partition (same users)
    are not processed ahead of it.
    """
    name = "event_consumer"

    def __init__(
        self,
        consumer: AIOKafkaConsumer,
        interaction_repo: InteractionRepository,
        recommendation_service: RecommendationService,
        stop_event: Optional[asyncio.Event] = None,
        poll_timeout_ms: int = settings.EVENT_CONSUMER_POLL_TIMEOUT_MS,
        max_records: int = settings.EVENT_CONSUMER_MAX_RECORDS,
        error_backoff_seconds: float = settings.EVENT_CONSUMER_BACKOFF_SECONDS,
    ):
        super().__init__(stop_event)
        self.consumer = consumer
        self.interaction_repo = interaction_repo
        self.recommendation_service = recommendation_service
        self.poll_timeout_ms = poll_timeout_ms
        self.max_records = max_records
        self.error_backoff_seconds = error_backoff_seconds

    async def handle_message(self, record: ConsumerRecord) -> Optional[InteractionEvent]:
        """
        Process one message. Returns the decoded event, or None if it was dropped.
        Raises if persistence or invalidation fails.
        """
        try:
            event = InteractionEvent.model_validate_json(record.value)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(
                "Dropping undecodable event",
                extra={"partition": record.partition, "offset": record.offset, "error": str(e)},
            )
            return None

        await self.interaction_repo.add(event.to_interaction())

        if event.event_type == EventType.BOOK:
            await self.recommendation_service.invalidate_cache(event.user_id)

        logger.debug(
            "Event processed",
            extra={"user_id": event.user_id, "event_type": event.event_type.value, "offset": record.offset},
        )
        return event

    async def process_partition(self, tp: TopicPartition, records: List[ConsumerRecord]) -> bool:
        """Handle records in order. Returns False if processing stopped on a failure."""
        for record in records:
            if self.stopping:
                return True
            try:
                await self.handle_message(record)
                await self.consumer.commit({tp: record.offset + 1})
            except Exception as e:
                logger.error(
                    "Event processing failed, will retry",
                    extra={"partition": tp.partition, "offset": record.offset, "error": str(e)},
                    exc_info=True,
                )
                self.consumer.seek(tp, record.offset)
                return False
        return True

    async def run(self):
        while True:
            try:
                await self.consumer.start()
                break
            except KafkaError as e:
                logger.error("Event consumer could not connect", extra={"error": str(e)})
                if await self._wait(self.error_backoff_seconds):
                    return

        logger.info("Event consumer subscribed", extra={"topic": settings.KAFKA_TOPIC_EVENTS})
        try:
            while not self.stopping:
                try:
                    batches = await self.consumer.getmany(
                        timeout_ms=self.poll_timeout_ms, max_records=self.max_records
                    )
                except KafkaError as e:
                    logger.error("Event poll failed", extra={"error": str(e)})
                    if await self._wait(self.error_backoff_seconds):
                        break
                    continue

                healthy = True
                for tp, records in batches.items():
                    if not await self.process_partition(tp, records):
                        healthy = False

                if not healthy and await self._wait(self.error_backoff_seconds):
                    break
        finally:
            await self.consumer.stop()
            logger.info("Event consumer closed")
