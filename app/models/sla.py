import enum
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class SLAStage(str, enum.Enum):
    """Ordered: each stage starts when the previous one completes."""
    DISPATCH = "dispatch"
    ASSIGNMENT = "assignment"
    ARRIVAL = "arrival"
    COMPLETION = "completion"


class SLAAlertType(str, enum.Enum):
    WARNING = "warning"
    BREACH = "breach"


class SLATimer(Base):
    __tablename__ = "sla_timers"
    __table_args__ = (UniqueConstraint("job_id", "stage", name="uq_sla_timers_job_stage"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    stage = Column(Enum(SLAStage), nullable=False)
    target_minutes = Column(Integer, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    breached = Column(Boolean, default=False, nullable=False)
    breach_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("Job", back_populates="sla_timers")
    alerts = relationship("SLAAlert", back_populates="timer", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SLATimer(job_id={self.job_id}, stage={self.stage.value}, target={self.target_minutes})>"


class SLAAlert(Base):
    __tablename__ = "sla_alerts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    timer_id = Column(UUID(as_uuid=True), ForeignKey("sla_timers.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(Enum(SLAAlertType), nullable=False)
    message = Column(String, nullable=False)
    acknowledged = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    timer = relationship("SLATimer", back_populates="alerts")
