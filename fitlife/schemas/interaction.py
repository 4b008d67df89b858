import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .common import UtcDatetime, utcnow


class EventType(str, Enum):
    VIEW = "View"
    CLICK = "Click"
    BOOK = "Book"
    COMPLETE = "Complete"
    CANCEL = "Cancel"
    RATE = "Rate"

    @classmethod
    def _missing_(cls, value):
        # Accept "book", "BOOK", ... and normalize to the canonical spelling
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class InteractionMetadata(BaseModel):
    """
    Typed event metadata.

    Known keys are validated; anything else is carried through untouched.
      - instructorId: instructor of the class (Complete events, used for the favorite-instructor factor)
      - rating: 0-5 (Rate events)
      - source: where the interaction originated (browse, search, recommendation)
      - durationSeconds: time spent (View events)
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    instructor_id: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    source: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class Interaction(BaseModel):
    """A persisted row of the append-only interaction log"""
    interaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    item_id: str
    item_type: str = "Class"
    event_type: EventType
    occurred_at: UtcDatetime = Field(default_factory=utcnow)
    metadata: InteractionMetadata = Field(default_factory=InteractionMetadata)


class InteractionEvent(BaseModel):
    """
    Event stream message, camelCase on the wire:
    {userId, itemId, itemType, eventType, timestamp, metadata}
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(..., min_length=1, max_length=100)
    item_id: str = Field(..., min_length=1, max_length=100)
    item_type: str = Field("Class", max_length=50)
    event_type: EventType
    timestamp: UtcDatetime = Field(default_factory=utcnow)
    metadata: InteractionMetadata = Field(default_factory=InteractionMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata_is_empty(cls, value):
        return {} if value is None else value

    def to_interaction(self) -> Interaction:
        return Interaction(
            user_id=self.user_id,
            item_id=self.item_id,
            item_type=self.item_type,
            event_type=self.event_type,
            occurred_at=self.timestamp,
            metadata=self.metadata,
        )

    def to_message(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class InteractionEventBatch(BaseModel):
    events: List[InteractionEvent] = Field(..., min_length=1, max_length=100)


class EventAccepted(BaseModel):
    status: str = "accepted"
    published: int
    failed: int = 0
