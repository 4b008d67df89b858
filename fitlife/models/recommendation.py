from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index

from .base import Base

class RecommendationDB(Base):
    """Generated recommendations, replaced wholesale per user on every regeneration"""
    __tablename__ = "recommendations"

    user_id = Column(String(100), ForeignKey("user_profiles.user_id", ondelete="CASCADE"), primary_key=True)
    item_id = Column(String(100), primary_key=True)
    item_type = Column(String(50), nullable=False, default="Class")
    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    reason = Column(String(500), nullable=False)
    generated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_recommendations_user_rank", "user_id", "rank"),
    )
