import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class CompliancePolicy(Base):
    """
    An organization's named set of credential requirements.

    Requirement codes:
        COI_VALID                general liability certificate not expired
        WORKERS_COMP             workers comp certificate not expired
        LICENSE_STATE            license issued in the technician's state
        CERTIFICATION:<name>     named certification held and not expired
    """
    __tablename__ = "compliance_policies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship("CompliancePolicyItem", back_populates="policy", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<CompliancePolicy(id={self.id}, name='{self.name}')>"


class CompliancePolicyItem(Base):
    __tablename__ = "compliance_policy_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id = Column(UUID(as_uuid=True), ForeignKey("compliance_policies.id", ondelete="CASCADE"), nullable=False, index=True)
    requirement_code = Column(String, nullable=False)
    required = Column(Boolean, default=True, nullable=False)
    weight = Column(Integer, default=10, nullable=False)
    min_valid_days = Column(Integer, default=0, nullable=False)

    policy = relationship("CompliancePolicy", back_populates="items")
