import json
import logging
from typing import List
from asyncpg import Pool
from pydantic import ValidationError

from ..schemas.interaction import Interaction, InteractionMetadata

logger = logging.getLogger(__name__)


def parse_metadata(raw, interaction_id: str) -> InteractionMetadata:
    """Stored metadata that no longer validates is read back as empty."""
    if raw is None:
        return InteractionMetadata()
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return InteractionMetadata.model_validate(data)
    except (ValueError, ValidationError):
        logger.warning("Ignoring malformed interaction metadata", extra={"interaction_id": interaction_id})
        return InteractionMetadata()


class InteractionRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def add(self, interaction: Interaction):
        query = """
            INSERT INTO interactions
                (interaction_id, user_id, item_id, item_type, event_type, occurred_at, metadata)
            VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
        """
        await self.db.execute(
            query,
            interaction.interaction_id,
            interaction.user_id,
            interaction.item_id,
            interaction.item_type,
            interaction.event_type.value,
            interaction.occurred_at,
            interaction.metadata.to_json(),
        )

    async def get_recent(self, user_id: str, window_days: int) -> List[Interaction]:
        query = """
            SELECT interaction_id, user_id, item_id, item_type, event_type, occurred_at, metadata
            FROM interactions
            WHERE user_id = $1
              AND occurred_at >= NOW() - make_interval(days => $2)
            ORDER BY occurred_at DESC
        """
        rows = await self.db.fetch(query, user_id, window_days)
        interactions = []
        for row in rows:
            data = dict(row)
            data["metadata"] = parse_metadata(data.get("metadata"), data["interaction_id"])
            interactions.append(Interaction.model_validate(data))
        return interactions
