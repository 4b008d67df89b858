from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .common import UtcDatetime, utcnow

ALL_LEVELS = "All Levels"


class FitnessClass(BaseModel):
    """A scheduled class: the item being recommended"""
    class_id: str = Field(..., min_length=1, max_length=100)
    name: str = ""
    category: str
    description: Optional[str] = ""
    instructor_id: str
    instructor_name: Optional[str] = None
    level: str = Field("Beginner", pattern="^(Beginner|Intermediate|Advanced|All Levels)$")
    start_time: UtcDatetime
    duration_minutes: int = Field(60, ge=0)
    capacity: int = Field(30, ge=0)
    current_enrollment: int = Field(0, ge=0)
    average_rating: float = Field(0.0, ge=0, le=5)
    total_ratings: int = Field(0, ge=0)
    weekly_bookings: int = Field(0, ge=0)
    is_active: bool = True
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def available_spots(self) -> int:
        return self.capacity - self.current_enrollment
