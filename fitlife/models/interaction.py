from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import JSONB

from .base import Base

class InteractionDB(Base):
    """Append-only interaction log (View, Click, Book, Complete, Cancel, Rate)"""
    __tablename__ = "interactions"

    interaction_id = Column(String(100), primary_key=True)
    user_id = Column(String(100), ForeignKey("user_profiles.user_id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(100), nullable=False)
    item_type = Column(String(50), nullable=False, default="Class")
    event_type = Column(String(20), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    metadata_ = Column("metadata", JSONB, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_interactions_user_time", "user_id", "occurred_at"),
    )
