from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .common import UtcDatetime, utcnow


class FitnessLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


# Ordinal position used for "one level below" comparisons
LEVEL_ORDER: Dict[str, int] = {
    FitnessLevel.BEGINNER.value: 0,
    FitnessLevel.INTERMEDIATE.value: 1,
    FitnessLevel.ADVANCED.value: 2,
}


class Segment(str, Enum):
    """Behavioral segment assigned by the segmentation job."""
    BEGINNER = "Beginner"
    HIGHLY_ACTIVE = "HighlyActive"
    YOGA_ENTHUSIAST = "YogaEnthusiast"
    STRENGTH_TRAINER = "StrengthTrainer"
    CARDIO_LOVER = "CardioLover"
    WEEKEND_WARRIOR = "WeekendWarrior"
    GENERAL = "General"


# Category -> specialist segment. Shared by segmentation (rule 3) and the scoring segment boost.
CATEGORY_SEGMENTS: Dict[str, Segment] = {
    "Yoga": Segment.YOGA_ENTHUSIAST,
    "HIIT": Segment.STRENGTH_TRAINER,
    "Strength": Segment.STRENGTH_TRAINER,
    "Spin": Segment.CARDIO_LOVER,
    "Running": Segment.CARDIO_LOVER,
    "Cardio": Segment.CARDIO_LOVER,
}


class UserProfile(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    fitness_level: FitnessLevel = FitnessLevel.BEGINNER
    preferred_categories: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    segment: Segment = Segment.GENERAL
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)
