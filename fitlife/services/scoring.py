"""
Class scoring: a deterministic, explainable weighted sum.

Factors (in the order their reason clauses appear):
  1. Fitness level      10 exact / All Levels, 5 one level up, else 0
  2. Preferred category 15
  3. Favorite instructor 20 (2+ completed classes with the instructor)
  4. Time preference    8 (start hour matches a past booking hour)
  5. Rating             2 x average rating
  6. Availability       -5 (<20% free), +3 (>80% free)
  7. Segment boost      12 (segment matches the class category)
  8. Recency            5 within a day, 3 within three days
  9. Popularity         8 over 50 weekly bookings, 4 over 20
"""
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence

from ..schemas.common import utcnow
from ..schemas.fitness_class import ALL_LEVELS, FitnessClass
from ..schemas.interaction import EventType, Interaction
from ..schemas.user import CATEGORY_SEGMENTS, LEVEL_ORDER, UserProfile

FALLBACK_REASON = "Recommended based on your activity"

FAVORITE_INSTRUCTOR_MIN_COMPLETIONS = 2


class ScoredClass(NamedTuple):
    score: float
    reason: str


def _level_score(user_level: str, class_level: str) -> float:
    if class_level == ALL_LEVELS or class_level == user_level:
        return 10
    user_rank = LEVEL_ORDER.get(user_level)
    class_rank = LEVEL_ORDER.get(class_level)
    if user_rank is not None and class_rank is not None and class_rank == user_rank + 1:
        return 5
    return 0


def _availability_score(capacity: int, enrollment: int) -> float:
    if capacity <= 0:
        return 0
    free = (capacity - enrollment) / capacity
    if free < 0.2:
        return -5
    if free > 0.8:
        return 3
    return 0


def _recency_score(start_time: datetime, now: datetime) -> float:
    days_until = (start_time - now).total_seconds() / 86400
    if days_until <= 1:
        return 5
    if days_until <= 3:
        return 3
    return 0


def _popularity_score(weekly_bookings: int) -> float:
    if weekly_bookings > 50:
        return 8
    if weekly_bookings > 20:
        return 4
    return 0


def score_class(
    user: UserProfile,
    fitness_class: FitnessClass,
    interactions: Sequence[Interaction],
    now: Optional[datetime] = None,
) -> ScoredClass:
    """Score one candidate class for a user and explain the bonuses that fired."""
    now = now or utcnow()
    score = 0.0
    clauses: List[str] = []

    user_level = getattr(user.fitness_level, "value", user.fitness_level)
    level = _level_score(user_level, fitness_class.level)
    score += level
    if level == 10:
        clauses.append("it matches your fitness level")
    elif level == 5:
        clauses.append("it's one step up from your fitness level")

    if fitness_class.category in user.preferred_categories:
        score += 15
        clauses.append(f"you love {fitness_class.category} classes")

    completed_with_instructor = sum(
        1 for i in interactions
        if i.event_type == EventType.COMPLETE and i.metadata.instructor_id == fitness_class.instructor_id
    )
    if completed_with_instructor >= FAVORITE_INSTRUCTOR_MIN_COMPLETIONS:
        score += 20
        instructor = fitness_class.instructor_name or fitness_class.instructor_id
        clauses.append(f"you enjoy classes with {instructor}")

    booking_hours = {i.occurred_at.hour for i in interactions if i.event_type == EventType.BOOK}
    if fitness_class.start_time.hour in booking_hours:
        score += 8
        clauses.append("it's at your preferred time")

    rating = fitness_class.average_rating
    score += rating * 2
    if rating > 0:
        clauses.append(f"it's rated {rating:.1f} out of 5")

    availability = _availability_score(fitness_class.capacity, fitness_class.current_enrollment)
    score += availability
    if availability > 0:
        clauses.append("there are plenty of spots left")

    if CATEGORY_SEGMENTS.get(fitness_class.category) == user.segment:
        score += 12
        segment = getattr(user.segment, "value", user.segment)
        clauses.append(f"it's popular with {segment} members like you")

    recency = _recency_score(fitness_class.start_time, now)
    score += recency
    if recency == 5:
        clauses.append("it starts within a day")
    elif recency == 3:
        clauses.append("it starts in the next few days")

    popularity = _popularity_score(fitness_class.weekly_bookings)
    score += popularity
    if popularity == 8:
        clauses.append("it's trending this week")
    elif popularity == 4:
        clauses.append("it's popular this week")

    reason = f"Because {' and '.join(clauses)}" if clauses else FALLBACK_REASON
    return ScoredClass(max(0.0, score), reason)
