from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .common import UtcDatetime
from .fitness_class import FitnessClass


class RecommendationRecord(BaseModel):
    """Persisted recommendation row, primary key (user_id, item_id)"""
    user_id: str
    item_id: str
    item_type: str = "Class"
    score: float = Field(..., ge=0)
    rank: int = Field(..., ge=1)
    reason: str
    generated_at: UtcDatetime


class RecommendationItem(BaseModel):
    """Single ranked recommendation with class details, as cached and served"""
    model_config = ConfigDict(populate_by_name=True)

    rank: int = Field(..., ge=1)
    score: float
    reason: str
    item: FitnessClass
    generated_at: UtcDatetime = Field(..., alias="generatedAt")

    def to_record(self, user_id: str) -> RecommendationRecord:
        return RecommendationRecord(
            user_id=user_id,
            item_id=self.item.class_id,
            score=self.score,
            rank=self.rank,
            reason=self.reason,
            generated_at=self.generated_at,
        )


class RecommendationResponse(BaseModel):
    """API response for recommendations"""
    user_id: str
    recommendations: List[RecommendationItem]
    count: int
