import uuid
from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.core.database import Base


class Technician(Base):
    """
    A warm technician: registered (self-signup or added by an org) and
    reachable by SendGrid work-order emails.

    Technicians owned by the public pool organization are visible to every
    organization's dispatch.
    """
    __tablename__ = "technicians"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)

    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=True)
    trade = Column(String, nullable=False, index=True)
    company_name = Column(String, nullable=True)
    years_experience = Column(Integer, nullable=True)

    # Location
    address_text = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True, index=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    service_radius = Column(Integer, default=50, nullable=False)  # miles

    # Dispatch eligibility
    is_available = Column(Boolean, default=True, nullable=False)
    signed_up = Column(Boolean, default=False, nullable=False)
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)

    # Performance
    average_rating = Column(Float, nullable=True)
    total_jobs = Column(Integer, default=0, nullable=False)
    response_rate = Column(Float, nullable=True)  # 0-100

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Credentials
    licenses = relationship("ContractorLicense", back_populates="technician", cascade="all, delete-orphan")
    insurance = relationship("ContractorInsurance", back_populates="technician", cascade="all, delete-orphan")
    certifications = relationship("ContractorCertification", back_populates="technician", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Technician(id={self.id}, name='{self.full_name}', trade='{self.trade}')>"
