import logging
from typing import List
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_org_id, require_admin
from app.models.job import Job
from app.models.sla import SLAAlert
from app.models.user import User
from app.schemas.job import SLAAlertResponse, SLACheckResult
from app.services.sla_engine import check_sla_timers

router = APIRouter(prefix="/sla", tags=["SLA"])
logger = logging.getLogger(__name__)


@router.get("/alerts", response_model=List[SLAAlertResponse])
def list_alerts(
    unacknowledged_only: bool = True,
    limit: int = Query(50, ge=1, le=200),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Warning and breach alerts for the organization's jobs, newest first."""
    query = db.query(SLAAlert).join(Job, Job.id == SLAAlert.job_id).filter(Job.org_id == org_id)
    if unacknowledged_only:
        query = query.filter(SLAAlert.acknowledged.is_(False))
    return query.order_by(SLAAlert.created_at.desc()).limit(limit).all()


@router.post("/alerts/{alert_id}/acknowledge", response_model=SLAAlertResponse)
def acknowledge_alert(
    alert_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    alert = (
        db.query(SLAAlert)
        .join(Job, Job.id == SLAAlert.job_id)
        .filter(SLAAlert.id == alert_id, Job.org_id == org_id)
        .first()
    )
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")

    alert.acknowledged = True
    db.commit()
    db.refresh(alert)
    return alert


@router.post("/check", response_model=SLACheckResult)
def run_sla_check(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Run the SLA timer scan now (admin only).

    Celery beat runs the same scan every SLA_POLL_INTERVAL_SECONDS.
    """
    logger.info(f"Manual SLA check triggered by {admin.email}")
    return check_sla_timers(db)
