import json
from typing import List, Optional
from asyncpg import Pool

from ..schemas.user import Segment, UserProfile


def _json_list(value) -> List[str]:
    if value is None:
        return []
    return json.loads(value) if isinstance(value, str) else list(value)


def row_to_profile(row) -> UserProfile:
    data = dict(row)
    data["preferred_categories"] = _json_list(data.get("preferred_categories"))
    data["goals"] = _json_list(data.get("goals"))
    return UserProfile.model_validate(data)


class UserRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        query = """
            SELECT user_id, email, first_name, last_name, fitness_level,
                   preferred_categories, goals, segment, created_at, updated_at
            FROM user_profiles
            WHERE user_id = $1
        """
        row = await self.db.fetchrow(query, user_id)
        return row_to_profile(row) if row else None

    async def list_user_ids(self, limit: int) -> List[str]:
        query = "SELECT user_id FROM user_profiles ORDER BY user_id LIMIT $1"
        rows = await self.db.fetch(query, limit)
        return [row["user_id"] for row in rows]

    async def list_active_user_ids(self, window_days: int, limit: int) -> List[str]:
        """Users with at least one interaction in the trailing window"""
        query = """
            SELECT u.user_id
            FROM user_profiles u
            WHERE EXISTS (
                SELECT 1 FROM interactions i
                WHERE i.user_id = u.user_id
                  AND i.occurred_at >= NOW() - make_interval(days => $1)
            )
            ORDER BY u.user_id
            LIMIT $2
        """
        rows = await self.db.fetch(query, window_days, limit)
        return [row["user_id"] for row in rows]

    async def update_segment(self, user_id: str, segment: Segment):
        query = """
            UPDATE user_profiles
            SET segment = $2, updated_at = NOW()
            WHERE user_id = $1
        """
        await self.db.execute(query, user_id, segment.value)
