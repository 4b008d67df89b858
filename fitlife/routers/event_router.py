from fastapi import APIRouter, Depends, Request, status

from ..schemas.interaction import EventAccepted, InteractionEvent, InteractionEventBatch
from ..dependencies import get_kafka_producer
from ..services.event_service import EventService
from ..limiter import limiter

router = APIRouter(prefix="/api/events", tags=["events"])

async def get_event_service(
    kafka_producer = Depends(get_kafka_producer)
) -> EventService:
    return EventService(kafka_producer)

@router.post("", response_model=EventAccepted, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("100/minute")
async def track_event(
    event: InteractionEvent,
    request: Request, # Required for limiter
    service: EventService = Depends(get_event_service)
):
    """
    Track a user interaction (View, Click, Book, Complete, Cancel, Rate)
    """
    return await service.track_event(event)

@router.post("/batch", response_model=EventAccepted, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("20/minute")
async def track_events(
    batch: InteractionEventBatch,
    request: Request,
    service: EventService = Depends(get_event_service)
):
    return await service.track_events(batch.events)
