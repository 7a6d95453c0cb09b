import uuid
from sqlalchemy import Column, Text, Float, Integer, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class JobRating(Base):
    """
    Four-dimension rating of a completed job (one per job).
    overall_rating is the mean of the four scores.
    """
    __tablename__ = "job_ratings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    rated_by_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quality_rating = Column(Integer, nullable=False)
    timeliness_rating = Column(Integer, nullable=False)
    communication_rating = Column(Integer, nullable=False)
    professionalism_rating = Column(Integer, nullable=False)
    overall_rating = Column(Float, nullable=False)
    comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
