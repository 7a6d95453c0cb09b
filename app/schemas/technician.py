from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from app.schemas.credential import (
    LicenseResponse,
    InsuranceResponse,
    CertificationResponse,
    ComplianceSummary,
)


class TechnicianSignupRequest(BaseModel):
    """Public self-registration of a technician"""
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=30)
    trade_needed: str = Field(..., min_length=1, description="Primary trade (HVAC, Plumbing, Electrical, ...)")
    address_text: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=2, max_length=2)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    company_name: Optional[str] = None


class TechnicianResponse(BaseModel):
    id: UUID
    org_id: UUID
    full_name: str
    email: str
    phone: Optional[str] = None
    trade: str
    company_name: Optional[str] = None
    years_experience: Optional[int] = None
    city: Optional[str] = None
    state: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    service_radius: int
    is_available: bool
    signed_up: bool
    average_rating: Optional[float] = None
    total_jobs: int
    response_rate: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TechnicianSignupResponse(BaseModel):
    success: bool = True
    technician: TechnicianResponse
    geocoded: bool
    message: str


class TechnicianDetailResponse(TechnicianResponse):
    """Technician with credentials and compliance summary"""
    licenses: List[LicenseResponse] = []
    insurance: List[InsuranceResponse] = []
    certifications: List[CertificationResponse] = []
    compliance: ComplianceSummary


class TechnicianRatingsResponse(BaseModel):
    technician_id: UUID
    average_rating: Optional[float] = None
    total_ratings: int
    ratings: List[dict]
