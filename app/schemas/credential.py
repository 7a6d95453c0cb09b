"""
Schemas for contractor credentials and compliance.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from app.models.credential import InsuranceType


class LicenseCreate(BaseModel):
    technician_id: UUID
    license_type: str = Field(..., min_length=1)
    license_number: str = Field(..., min_length=1)
    issuing_state: str = Field(..., min_length=2, max_length=2)
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class LicenseUpdate(BaseModel):
    license_type: Optional[str] = None
    license_number: Optional[str] = None
    issuing_state: Optional[str] = Field(None, min_length=2, max_length=2)
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class LicenseResponse(BaseModel):
    id: UUID
    technician_id: UUID
    license_type: str
    license_number: str
    issuing_state: str
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InsuranceCreate(BaseModel):
    technician_id: UUID
    insurance_type: InsuranceType
    carrier: Optional[str] = None
    policy_number: Optional[str] = None
    coverage_amount: Optional[float] = Field(None, ge=0)
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class InsuranceUpdate(BaseModel):
    insurance_type: Optional[InsuranceType] = None
    carrier: Optional[str] = None
    policy_number: Optional[str] = None
    coverage_amount: Optional[float] = Field(None, ge=0)
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class InsuranceResponse(BaseModel):
    id: UUID
    technician_id: UUID
    insurance_type: InsuranceType
    carrier: Optional[str] = None
    policy_number: Optional[str] = None
    coverage_amount: Optional[float] = None
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CertificationCreate(BaseModel):
    technician_id: UUID
    certification_name: str = Field(..., min_length=1)
    issuing_body: Optional[str] = None
    certification_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class CertificationUpdate(BaseModel):
    certification_name: Optional[str] = None
    issuing_body: Optional[str] = None
    certification_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class CertificationResponse(BaseModel):
    id: UUID
    technician_id: UUID
    certification_name: str
    issuing_body: Optional[str] = None
    certification_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ComplianceSummary(BaseModel):
    """Credential-derived scores for one technician"""
    technician_id: UUID
    compliance_score: int = Field(..., ge=0, le=100)
    composite_score: int
    grade: str
    coi_status: str


class PolicyItemSchema(BaseModel):
    requirement_code: str = Field(..., pattern=r"^(COI_VALID|WORKERS_COMP|LICENSE_STATE|CERTIFICATION:.+)$")
    required: bool = True
    weight: int = Field(10, ge=1, le=100)
    min_valid_days: int = Field(0, ge=0)

    class Config:
        from_attributes = True


class PolicyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    items: List[PolicyItemSchema] = Field(..., min_length=1)


class PolicyResponse(BaseModel):
    id: UUID
    org_id: UUID
    job_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    is_active: bool
    items: List[PolicyItemSchema]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PolicyEvaluation(BaseModel):
    technician_id: UUID
    technician_name: str
    meets_all: bool
    score: int
    failed: List[str]
