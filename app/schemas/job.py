from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import UUID
from app.models.job import JobStatus, JobUrgency
from app.models.sla import SLAAlertType, SLAStage


class SLAConfig(BaseModel):
    """Per-stage SLA targets in minutes"""
    dispatch: int = Field(..., gt=0)
    assignment: int = Field(..., gt=0)
    arrival: int = Field(..., gt=0)
    completion: int = Field(..., gt=0)


class JobCreateRequest(BaseModel):
    """Schema for creating a new job"""
    org_id: Optional[UUID] = None
    job_title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    trade_needed: str = Field(..., min_length=1)
    required_certifications: Optional[List[str]] = None
    address_text: str = Field(..., min_length=1)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    city: Optional[str] = None
    state: Optional[str] = None
    urgency: JobUrgency
    scheduled_at: Optional[datetime] = None
    duration: Optional[str] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    pay_rate: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    policy_id: Optional[UUID] = None
    sla_config: Optional[SLAConfig] = None
    dispatch_immediately: Optional[bool] = None
    idempotency_key: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class JobResponse(BaseModel):
    """Schema for job response"""
    id: UUID
    org_id: UUID
    job_title: str
    description: Optional[str] = None
    trade_needed: str
    required_certifications: Optional[List[str]] = None
    address_text: str
    city: Optional[str] = None
    state: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    urgency: JobUrgency
    scheduled_at: Optional[datetime] = None
    duration: Optional[str] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    pay_rate: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    policy_id: Optional[UUID] = None
    job_status: JobStatus
    assigned_tech_id: Optional[UUID] = None
    sla_breached: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True  # Allows conversion from SQLAlchemy models


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    per_page: int


class SLATimerResponse(BaseModel):
    id: UUID
    stage: SLAStage
    target_minutes: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    breached: bool

    class Config:
        from_attributes = True


class SLAAlertResponse(BaseModel):
    id: UUID
    timer_id: UUID
    job_id: UUID
    alert_type: SLAAlertType
    message: str
    acknowledged: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SLACheckResult(BaseModel):
    checked: int
    alerts: int
    breaches: int
    details: Dict[str, List[Dict[str, Any]]] = {}


class DispatchResult(BaseModel):
    """Outcome of dispatching a job to warm technicians and cold leads"""
    success: bool
    outreach_id: Optional[UUID] = None
    warm_sent: int = 0
    cold_sent: int = 0
    total_recipients: int = 0
    message: str
    pipeline_stats: Optional[Dict[str, Any]] = None


class JobCreateResponse(BaseModel):
    """Schema for job creation response"""
    job: JobResponse
    duplicate: bool = False
    dispatch: Optional[DispatchResult] = None
    dispatch_error: Optional[str] = None
    sla_timers: List[SLATimerResponse] = []


class AssignRequest(BaseModel):
    technician_id: UUID


class CompleteRequest(BaseModel):
    rating: Optional[float] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class JobTransitionResponse(BaseModel):
    success: bool = True
    job: JobResponse
    message: str


class RespondRequest(BaseModel):
    """A recipient's answer to a work-order email"""
    recipient_id: UUID
    response: str
    reason: Optional[str] = None


class RespondResponse(BaseModel):
    success: bool = True
    response: str
    message: str


class WorkOrderSummary(BaseModel):
    """Public view of a job shown to a recipient before responding"""
    job_id: UUID
    job_title: str
    trade_needed: str
    city: Optional[str] = None
    state: Optional[str] = None
    urgency: JobUrgency
    scheduled_at: Optional[datetime] = None
    pay_rate: Optional[str] = None
    job_status: JobStatus
    already_responded: bool


class JobTechnicianResponse(BaseModel):
    """A technician (or cold lead) the job was dispatched to"""
    recipient_id: UUID
    technician_id: Optional[UUID] = None
    cold_lead_id: Optional[UUID] = None
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    trade: Optional[str] = None
    distance_miles: Optional[float] = None
    rating: float
    dispatch_method: str
    email_sent: bool
    reply_received: bool
    ai_qualified: Optional[bool] = None
    signed_up: bool


class RateJobRequest(BaseModel):
    quality_rating: int = Field(..., ge=1, le=5)
    timeliness_rating: int = Field(..., ge=1, le=5)
    communication_rating: int = Field(..., ge=1, le=5)
    professionalism_rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=2000)


class JobRatingResponse(BaseModel):
    id: UUID
    job_id: UUID
    technician_id: UUID
    quality_rating: int
    timeliness_rating: int
    communication_rating: int
    professionalism_rating: int
    overall_rating: float
    comments: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobSLAResponse(BaseModel):
    job_id: UUID
    status: str
    active_stage: Optional[str] = None
    time_remaining_minutes: Optional[float] = None
    time_remaining_display: Optional[str] = None
    timers: List[SLATimerResponse]


class AnalyticsSummary(BaseModel):
    total_jobs: int
    by_status: Dict[str, int]
    by_trade: Dict[str, int]
    this_month: int
    last_month: int
    percent_change: float
    recent_jobs: List[JobResponse]


class WorkOrderParseRequest(BaseModel):
    text: str = Field(..., min_length=10, max_length=20000)


class WorkOrderParseResponse(BaseModel):
    """Job fields extracted from free text; anything not found is null"""
    job_title: Optional[str] = None
    description: Optional[str] = None
    trade_needed: Optional[str] = None
    address_text: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    urgency: Optional[JobUrgency] = None
    scheduled_at: Optional[datetime] = None
    duration: Optional[str] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    pay_rate: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    required_certifications: List[str] = []
    source: str = "heuristic"


class AuditEntryResponse(BaseModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    action: str
    actor_id: Optional[UUID] = None
    actor_type: str
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
