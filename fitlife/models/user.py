from sqlalchemy import Column, String, DateTime, JSON, func

from .base import Base

class UserProfileDB(Base):
    """
    ORM Model - Mapping 1-1 with table 'user_profiles' in Postgres
    """
    __tablename__ = "user_profiles"

    user_id = Column(String(100), primary_key=True)
    email = Column(String(255), unique=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    fitness_level = Column(String(50), nullable=False, default="Beginner")
    preferred_categories = Column(JSON, nullable=False, default=list)  # ["Yoga", "HIIT"]
    goals = Column(JSON, nullable=False, default=list)
    segment = Column(String(50), nullable=False, default="General")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
