from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Index, func

from .base import Base

class FitnessClassDB(Base):
    __tablename__ = "classes"

    class_id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    category = Column(String(50), nullable=False)  # Yoga, HIIT, Strength, Spin, ...
    description = Column(String, default="")
    instructor_id = Column(String(100), nullable=False)
    instructor_name = Column(String(255))
    level = Column(String(50), nullable=False, default="Beginner")
    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    capacity = Column(Integer, nullable=False, default=30)
    current_enrollment = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)
    weekly_bookings = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_classes_active_start", "is_active", "start_time"),
    )
