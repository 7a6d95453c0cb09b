from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, List, Optional
from uuid import UUID


class CampaignValidateRequest(BaseModel):
    campaign_id: str = Field(..., min_length=1)


class CampaignValidateResponse(BaseModel):
    valid: bool
    campaign_id: str
    name: Optional[str] = None
    status: Optional[Any] = None
    error: Optional[str] = None


class DispatchLeadsRequest(BaseModel):
    """Push cold leads to an Instantly campaign"""
    campaign_id: Optional[str] = None
    trade: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    lead_ids: Optional[List[UUID]] = None
    limit: int = Field(50, ge=1, le=500)


class DispatchLeadsResponse(BaseModel):
    success: bool
    campaign_id: str
    added: int
    failed: int
    results: List[Dict[str, Any]]


class PipelineRunRequest(BaseModel):
    job_id: UUID
    select_limit: int = Field(20, ge=1, le=100)
    verify_limit: int = Field(10, ge=1, le=100)
    min_confidence: int = Field(70, ge=0, le=100)
    skip_if_cold_exists: bool = True


class PipelineResult(BaseModel):
    success: bool
    pipeline_ran: bool
    selected: int = 0
    verified: int = 0
    moved_to_cold: int = 0
    cold_lead_ids: List[UUID] = []
    hunter_credits_used: int = 0
    error: Optional[str] = None
    skipped_reason: Optional[str] = None


class PipelineStatus(BaseModel):
    can_run: bool
    reason: Optional[str] = None
    hunter_credits: int = 0
    pending_verification: int = 0
    ready_to_move: int = 0


class UnsubscribeRequest(BaseModel):
    email: EmailStr
    type: str = Field("cold", pattern="^(warm|cold)$")


class UnsubscribeResponse(BaseModel):
    success: bool = True
    email: str
    message: str
