import enum
import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, Enum, ForeignKey, JSON, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class OutreachStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class DispatchMethod(str, enum.Enum):
    SENDGRID_WARM = "sendgrid_warm"
    INSTANTLY_COLD = "instantly_cold"


class WorkOrderOutreach(Base):
    """
    The dispatch record of a job (at most one per job) with per-channel counters.
    """
    __tablename__ = "work_order_outreach"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(OutreachStatus), default=OutreachStatus.PENDING, nullable=False)

    total_recipients = Column(Integer, default=0, nullable=False)
    warm_sent = Column(Integer, default=0, nullable=False)
    warm_opened = Column(Integer, default=0, nullable=False)
    warm_replied = Column(Integer, default=0, nullable=False)
    warm_qualified = Column(Integer, default=0, nullable=False)
    cold_sent = Column(Integer, default=0, nullable=False)
    cold_opened = Column(Integer, default=0, nullable=False)
    cold_replied = Column(Integer, default=0, nullable=False)
    cold_qualified = Column(Integer, default=0, nullable=False)

    # Lead pipeline result when the pipeline ran during dispatch
    pipeline_stats = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    job = relationship("Job", back_populates="outreach")
    recipients = relationship("WorkOrderRecipient", back_populates="outreach", cascade="all, delete-orphan")


class WorkOrderRecipient(Base):
    """
    One contacted party of an outreach: either a warm technician or a cold lead.
    """
    __tablename__ = "work_order_recipients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    outreach_id = Column(UUID(as_uuid=True), ForeignKey("work_order_outreach.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True)
    cold_lead_id = Column(UUID(as_uuid=True), ForeignKey("cold_leads.id", ondelete="SET NULL"), nullable=True)
    dispatch_method = Column(Enum(DispatchMethod), nullable=False)
    email = Column(String, nullable=False)

    email_sent = Column(Boolean, default=False, nullable=False)
    email_sent_at = Column(DateTime(timezone=True), nullable=True)

    reply_received = Column(Boolean, default=False, nullable=False)
    reply_received_at = Column(DateTime(timezone=True), nullable=True)
    ai_qualified = Column(Boolean, nullable=True)
    qualified_at = Column(DateTime(timezone=True), nullable=True)
    qualification_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    outreach = relationship("WorkOrderOutreach", back_populates="recipients")
    technician = relationship("Technician")
    cold_lead = relationship("ColdLead")
