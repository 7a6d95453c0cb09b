"""
Outreach administration (platform admins only).

- POST /outreach/campaigns/validate: Check an Instantly campaign id
- GET /outreach/campaigns: Instantly campaigns
- GET /outreach/campaigns/{id}/analytics: Instantly campaign analytics
- POST /outreach/dispatch-leads: Push cold leads to a campaign
- POST /outreach/pipeline/run: Run the lead pipeline for a job
- GET /outreach/pipeline/status: Hunter credits and staging counts

Bulk lead pushes here are separate from job dispatch, which goes through
POST /jobs/{id}/dispatch.
"""

import logging
from typing import Any, Dict, List
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import require_admin
from app.core.timeutils import utcnow
from app.models.job import Job
from app.models.lead import ColdLead, OutreachUnsubscribe
from app.models.user import User
from app.schemas.outreach import (
    CampaignValidateRequest,
    CampaignValidateResponse,
    DispatchLeadsRequest,
    DispatchLeadsResponse,
    PipelineResult,
    PipelineRunRequest,
    PipelineStatus,
)
from app.services.instantly_client import InstantlyClient, build_cold_lead_payload, get_campaign_id_for_trade
from app.services.lead_pipeline import get_pipeline_status, run_lead_pipeline

router = APIRouter(prefix="/outreach", tags=["Outreach"])
logger = logging.getLogger(__name__)


@router.post("/campaigns/validate", response_model=CampaignValidateResponse)
def validate_campaign(
    request: CampaignValidateRequest,
    admin: User = Depends(require_admin)
):
    """Confirm a campaign id exists in Instantly before it is configured for a trade."""
    campaign = InstantlyClient().get_campaign(request.campaign_id)
    if not campaign:
        raise HTTPException(
            status_code=404,
            detail="Campaign not found in Instantly. Please check the Campaign ID."
        )

    logger.info(f"Validated Instantly campaign {request.campaign_id}: {campaign.get('name')}")
    return CampaignValidateResponse(
        valid=True,
        campaign_id=request.campaign_id,
        name=campaign.get("name"),
        status=campaign.get("status"),
    )


@router.get("/campaigns")
def list_campaigns(admin: User = Depends(require_admin)) -> List[Dict[str, Any]]:
    return InstantlyClient().list_campaigns()


@router.get("/campaigns/{campaign_id}/analytics")
def campaign_analytics(
    campaign_id: str,
    admin: User = Depends(require_admin)
) -> Dict[str, Any]:
    analytics = InstantlyClient().get_campaign_analytics(campaign_id)
    if analytics is None:
        raise HTTPException(status_code=502, detail="Failed to fetch campaign analytics from Instantly")
    return analytics


@router.post("/dispatch-leads", response_model=DispatchLeadsResponse)
def dispatch_leads(
    request: DispatchLeadsRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Add cold leads to an Instantly campaign.

    Leads are the given lead_ids, or the oldest subscribed leads matching
    trade and state. The campaign defaults to the one configured for the
    trade. Leads on the unsubscribe list are never sent.
    """
    campaign_id = request.campaign_id or get_campaign_id_for_trade(request.trade)
    if not campaign_id:
        raise HTTPException(status_code=400, detail="Campaign ID is required (none configured for this trade)")

    unsubscribed = select(OutreachUnsubscribe.email)
    query = db.query(ColdLead).filter(
        ColdLead.unsubscribed_at.is_(None),
        func.lower(ColdLead.email).notin_(unsubscribed),
    )
    if request.lead_ids:
        query = query.filter(ColdLead.id.in_(request.lead_ids))
    else:
        if request.trade:
            query = query.filter(ColdLead.trade_type.ilike(f"%{request.trade}%"))
        if request.state:
            query = query.filter(ColdLead.state == request.state.upper())
        query = query.order_by(ColdLead.created_at.asc())
    leads = query.limit(request.limit).all()

    if not leads:
        raise HTTPException(status_code=404, detail="No leads found")

    result = InstantlyClient().add_leads(campaign_id, [build_cold_lead_payload(lead) for lead in leads])

    results = []
    if result["success"]:
        now = utcnow()
        for lead in leads:
            lead.last_dispatched_at = now
            lead.dispatch_count = (lead.dispatch_count or 0) + 1
            results.append({"lead_id": str(lead.id), "email": lead.email, "status": "sent"})
        db.commit()
    else:
        for lead in leads:
            results.append({"lead_id": str(lead.id), "email": lead.email, "status": "failed", "error": result["errors"]})

    added = result["added"]
    logger.info(f"Dispatched {added}/{len(leads)} cold leads to campaign {campaign_id} (by {admin.email})")
    return DispatchLeadsResponse(
        success=result["success"],
        campaign_id=campaign_id,
        added=added,
        failed=len(leads) - added,
        results=results,
    )


@router.post("/pipeline/run", response_model=PipelineResult)
def run_pipeline(
    request: PipelineRunRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Select, verify and move staged license records to cold leads for a job."""
    job = db.query(Job).filter(Job.id == request.job_id).first()
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    try:
        result = run_lead_pipeline(
            db, job,
            select_limit=request.select_limit,
            verify_limit=request.verify_limit,
            min_confidence=request.min_confidence,
            skip_if_cold_exists=request.skip_if_cold_exists,
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Lead pipeline failed for job {job.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Lead pipeline failed")

    return PipelineResult(**result)


@router.get("/pipeline/status", response_model=PipelineStatus)
def pipeline_status(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return get_pipeline_status(db)
