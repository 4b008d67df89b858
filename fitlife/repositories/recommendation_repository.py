from typing import List, Sequence
from asyncpg import Pool

from ..schemas.recommendation import RecommendationRecord


class RecommendationRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def get_recent(self, user_id: str, within_minutes: int, limit: int) -> List[RecommendationRecord]:
        """Rows generated within the freshness window, best rank first"""
        query = """
            SELECT user_id, item_id, item_type, score, rank, reason, generated_at
            FROM recommendations
            WHERE user_id = $1
              AND generated_at >= NOW() - make_interval(mins => $2)
            ORDER BY rank
            LIMIT $3
        """
        rows = await self.db.fetch(query, user_id, within_minutes, limit)
        return [RecommendationRecord.model_validate(dict(row)) for row in rows]

    async def replace_for_user(self, user_id: str, records: Sequence[RecommendationRecord]):
        """
        Delete-then-insert inside one transaction: readers see either the old
        set or the new set, never a mix, and a failed insert keeps the old rows.
        """
        query_insert = """
            INSERT INTO recommendations
                (user_id, item_id, item_type, score, rank, reason, generated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
        """
        async with self.db.acquire() as conn:
            async with conn.transaction():
                await conn.execute("DELETE FROM recommendations WHERE user_id = $1", user_id)
                if records:
                    await conn.executemany(
                        query_insert,
                        [
                            (user_id, r.item_id, r.item_type, r.score, r.rank, r.reason, r.generated_at)
                            for r in records
                        ],
                    )
