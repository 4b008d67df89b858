from collections import Counter
from typing import Mapping, Sequence

from ..schemas.interaction import Interaction
from ..schemas.user import CATEGORY_SEGMENTS, Segment

BEGINNER_MAX_COMPLETIONS = 5
HIGHLY_ACTIVE_PER_WEEK = 5
CATEGORY_DOMINANCE = 0.6
WEEKEND_SHARE = 0.8


def compute_segment(
    completed: Sequence[Interaction],
    categories: Mapping[str, str],
    lookback_days: int,
) -> Segment:
    """
    Assign a segment from completed classes in the lookback window.
    First matching rule wins:
    1. fewer than 5 completions -> Beginner
    2. 5+ completions per week on average -> HighlyActive
    3. one mapped category over 60% of completions -> its specialist segment
    4. over 80% of completions on Saturday/Sunday (UTC) -> WeekendWarrior
    5. General

    `categories` maps class id -> category; completions of unknown classes
    count toward the total but toward no category.
    """
    total = len(completed)
    if total < BEGINNER_MAX_COMPLETIONS:
        return Segment.BEGINNER

    weeks = lookback_days / 7
    if weeks > 0 and total / weeks >= HIGHLY_ACTIVE_PER_WEEK:
        return Segment.HIGHLY_ACTIVE

    category_counts = Counter(
        categories[i.item_id] for i in completed if i.item_id in categories
    )
    if category_counts:
        category, count = category_counts.most_common(1)[0]
        if count / total > CATEGORY_DOMINANCE and category in CATEGORY_SEGMENTS:
            return CATEGORY_SEGMENTS[category]

    weekend = sum(1 for i in completed if i.occurred_at.weekday() >= 5)
    if weekend / total > WEEKEND_SHARE:
        return Segment.WEEKEND_WARRIOR

    return Segment.GENERAL
