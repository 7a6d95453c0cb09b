"""
Cold lead models.

license_records is the scraped staging table (state license boards); the lead
pipeline selects, verifies and moves rows from it into cold_leads, which is
what a dispatch with no warm technicians pushes to Instantly.
"""

import uuid
from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class LicenseRecord(Base):
    __tablename__ = "license_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    source = Column(String, nullable=True)  # e.g. "CSLB", "DBPR"

    # License
    license_number = Column(String, nullable=True)
    license_status = Column(String, nullable=True)
    license_classification = Column(String, nullable=True)
    license_expiration = Column(DateTime(timezone=True), nullable=True)

    # Contact
    business_name = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    job_title = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True, index=True)
    zip = Column(String, nullable=True)
    trade_type = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    # Pipeline progress
    ai_selected = Column(Boolean, default=False, nullable=False, index=True)
    ai_selection_date = Column(DateTime(timezone=True), nullable=True)
    ai_selection_score = Column(Float, nullable=True)
    email = Column(String, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    email_verification_date = Column(DateTime(timezone=True), nullable=True)
    hunter_confidence = Column(Integer, nullable=True)
    moved_to_cold_leads = Column(Boolean, default=False, nullable=False)
    cold_lead_id = Column(UUID(as_uuid=True), ForeignKey("cold_leads.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ColdLead(Base):
    __tablename__ = "cold_leads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    supersearch_query = Column(String, nullable=True)

    full_name = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    company_name = Column(String, nullable=True)
    job_title = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True, index=True)
    country = Column(String, nullable=True)
    trade_type = Column(String, nullable=True, index=True)

    lead_source = Column(String, nullable=True)
    license_number = Column(String, nullable=True)
    license_expiration = Column(DateTime(timezone=True), nullable=True)
    license_status = Column(String, nullable=True)
    license_classification = Column(String, nullable=True)

    email_verified = Column(Boolean, default=False, nullable=False)
    enriched_at = Column(DateTime(timezone=True), nullable=True)
    enrichment_source = Column(String, nullable=True)
    enrichment_credits_used = Column(Integer, default=0, nullable=False)

    # Outreach state
    last_dispatched_at = Column(DateTime(timezone=True), nullable=True)
    dispatch_count = Column(Integer, default=0, nullable=False)
    has_replied = Column(Boolean, default=False, nullable=False)
    has_signed_up = Column(Boolean, default=False, nullable=False)
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ColdLead(id={self.id}, email='{self.email}')>"


class OutreachUnsubscribe(Base):
    """Global do-not-contact list, keyed by email."""
    __tablename__ = "outreach_unsubscribes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    unsubscribe_type = Column(String, nullable=False)  # "warm" | "cold"
    unsubscribed_at = Column(DateTime(timezone=True), nullable=False)
