"""
Contractor credentials: licenses, insurance certificates (COI) and trade
certifications. Expiration dates drive the compliance score.
"""

import enum
import uuid
from sqlalchemy import Column, String, Float, DateTime, Enum, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class InsuranceType(str, enum.Enum):
    GENERAL_LIABILITY = "general_liability"
    WORKERS_COMP = "workers_comp"
    AUTO = "auto"
    UMBRELLA = "umbrella"


class ContractorLicense(Base):
    __tablename__ = "contractor_licenses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    license_type = Column(String, nullable=False)
    license_number = Column(String, nullable=False)
    issuing_state = Column(String, nullable=False)
    issue_date = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    technician = relationship("Technician", back_populates="licenses")


class ContractorInsurance(Base):
    __tablename__ = "contractor_insurance"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    insurance_type = Column(Enum(InsuranceType), nullable=False)
    carrier = Column(String, nullable=True)
    policy_number = Column(String, nullable=True)
    coverage_amount = Column(Float, nullable=True)
    effective_date = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    technician = relationship("Technician", back_populates="insurance")


class ContractorCertification(Base):
    __tablename__ = "contractor_certifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    technician_id = Column(UUID(as_uuid=True), ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    certification_name = Column(String, nullable=False)
    issuing_body = Column(String, nullable=True)
    certification_number = Column(String, nullable=True)
    issue_date = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    technician = relationship("Technician", back_populates="certifications")
