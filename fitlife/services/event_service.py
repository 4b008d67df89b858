import logging
from typing import List, Optional

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from ..config import KAFKA_TOPIC_EVENTS
from ..exceptions import ServiceUnavailableException
from ..schemas.common import utcnow
from ..schemas.interaction import EventAccepted, InteractionEvent

logger = logging.getLogger(__name__)


class EventService:
    """Publishes interaction events to the event stream, keyed by user id."""

    def __init__(self, kafka_producer: Optional[AIOKafkaProducer], topic: str = KAFKA_TOPIC_EVENTS):
        self.kafka_producer = kafka_producer
        self.topic = topic

    async def track_event(self, event: InteractionEvent) -> EventAccepted:
        if self.kafka_producer is None:
            raise ServiceUnavailableException("Event stream is not connected")
        try:
            await self._publish(event)
        except KafkaError as e:
            logger.error("Kafka publish failed", extra={"user_id": event.user_id, "error": str(e)})
            raise ServiceUnavailableException("Event could not be published") from e
        return EventAccepted(published=1)

    async def track_events(self, events: List[InteractionEvent]) -> EventAccepted:
        if self.kafka_producer is None:
            raise ServiceUnavailableException("Event stream is not connected")
        published = 0
        failed = 0
        for event in events:
            try:
                await self._publish(event)
                published += 1
            except KafkaError as e:
                failed += 1
                logger.error("Kafka publish failed", extra={"user_id": event.user_id, "error": str(e)})
        if published == 0:
            raise ServiceUnavailableException("No events could be published")
        return EventAccepted(published=published, failed=failed)

    async def _publish(self, event: InteractionEvent):
        # Server time is authoritative for ordering
        stamped = event.model_copy(update={"timestamp": utcnow()})
        await self.kafka_producer.send_and_wait(
            self.topic,
            value=stamped.to_message(),
            key=event.user_id.encode("utf-8"),
        )
        logger.debug("Event published", extra={"user_id": event.user_id, "event_type": event.event_type.value})
