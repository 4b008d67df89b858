from typing import List, Sequence
from asyncpg import Pool

from ..schemas.fitness_class import FitnessClass

_COLUMNS = """
    class_id, name, category, description, instructor_id, instructor_name,
    level, start_time, duration_minutes, capacity, current_enrollment,
    average_rating, total_ratings, weekly_bookings, is_active, created_at, updated_at
"""


class ClassRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def list_upcoming(self, limit: int) -> List[FitnessClass]:
        """
        Candidate pool: active classes that have not started and still have spots.
        Ordered by start time then id, which is also the tie-break order for equal scores.
        """
        query = f"""
            SELECT {_COLUMNS}
            FROM classes
            WHERE is_active
              AND start_time > NOW()
              AND current_enrollment < capacity
            ORDER BY start_time, class_id
            LIMIT $1
        """
        rows = await self.db.fetch(query, limit)
        return [FitnessClass.model_validate(dict(row)) for row in rows]

    async def get_by_ids(self, class_ids: Sequence[str]) -> List[FitnessClass]:
        if not class_ids:
            return []
        query = f"""
            SELECT {_COLUMNS}
            FROM classes
            WHERE class_id = ANY($1::varchar[])
        """
        rows = await self.db.fetch(query, list(class_ids))
        return [FitnessClass.model_validate(dict(row)) for row in rows]

    async def list_popular(self, limit: int) -> List[FitnessClass]:
        query = f"""
            SELECT {_COLUMNS}
            FROM classes
            WHERE is_active AND start_time > NOW()
            ORDER BY weekly_bookings DESC, average_rating DESC, class_id
            LIMIT $1
        """
        rows = await self.db.fetch(query, limit)
        return [FitnessClass.model_validate(dict(row)) for row in rows]
