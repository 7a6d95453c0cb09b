import enum
import uuid
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, DateTime, Enum, ForeignKey, JSON, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class JobStatus(str, enum.Enum):
    """
    Job lifecycle status.

    MATCHING -> DISPATCHED -> ASSIGNED -> COMPLETED
                    ^             |
                    |         (unassign)
                 PENDING <--------+
    """
    MATCHING = "matching"
    DISPATCHED = "dispatched"
    ASSIGNED = "assigned"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JobUrgency(str, enum.Enum):
    EMERGENCY = "emergency"
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    WITHIN_WEEK = "within_week"
    FLEXIBLE = "flexible"


class Job(Base):
    """
    A work order posted by an organization.
    """
    __tablename__ = "jobs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    job_title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    trade_needed = Column(String, nullable=False, index=True)
    required_certifications = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)

    # Location
    address_text = Column(String, nullable=False)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True, index=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    # Scheduling & budget
    urgency = Column(Enum(JobUrgency), nullable=False, default=JobUrgency.WITHIN_WEEK)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    duration = Column(String, nullable=True)
    budget_min = Column(Float, nullable=True)
    budget_max = Column(Float, nullable=True)
    pay_rate = Column(String, nullable=True)

    # On-site contact
    contact_name = Column(String, nullable=False, default="")
    contact_phone = Column(String, nullable=False, default="")
    contact_email = Column(String, nullable=False, default="")

    # Compliance policy attached at creation (policy row points back via job_id)
    policy_id = Column(UUID(as_uuid=True), nullable=True)

    # Lifecycle
    job_status = Column(Enum(JobStatus), default=JobStatus.MATCHING, nullable=False, index=True)
    assigned_tech_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True, index=True)
    sla_breached = Column(Boolean, default=False, nullable=False)
    idempotency_key = Column(String(64), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    assigned_technician = relationship("Technician", foreign_keys=[assigned_tech_id])
    candidates = relationship("JobCandidate", back_populates="job", cascade="all, delete-orphan", order_by="JobCandidate.rank")
    sla_timers = relationship("SLATimer", back_populates="job", cascade="all, delete-orphan")
    outreach = relationship("WorkOrderOutreach", back_populates="job", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.job_title}', status={self.job_status.value})>"


class JobCandidate(Base):
    """
    A technician matched to a job by distance, written by find_matching_technicians.
    """
    __tablename__ = "job_candidates"
    __table_args__ = (UniqueConstraint("job_id", "technician_id", name="uq_job_candidates_job_tech"),)

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    distance_miles = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("Job", back_populates="candidates")
    technician = relationship("Technician")
