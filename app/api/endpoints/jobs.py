import logging
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_current_org_id
from app.core.api_rate_limiter import check_public_response_rate_limit, get_client_ip
from app.crud import job as job_crud
from app.models.job import JobStatus
from app.models.user import User
from app.schemas.job import (
    AnalyticsSummary,
    AssignRequest,
    AuditEntryResponse,
    CompleteRequest,
    DispatchResult,
    JobCreateRequest,
    JobCreateResponse,
    JobListResponse,
    JobRatingResponse,
    JobResponse,
    JobSLAResponse,
    JobTechnicianResponse,
    JobTransitionResponse,
    RateJobRequest,
    RespondRequest,
    RespondResponse,
    SLATimerResponse,
    WorkOrderSummary,
)
from app.services import job_lifecycle
from app.services.job_lifecycle import (
    InvalidResponseError,
    InvalidStateError,
    JobCreationError,
    JobNotFoundError,
    JobUpdateError,
    RatingExistsError,
)
from app.services.audit_service import get_entity_history
from app.services.matching import get_job_technicians
from app.services.sla_engine import calculate_sla_status, format_minutes, get_active_timer, get_time_remaining

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = logging.getLogger(__name__)


def _http_error(e: Exception) -> HTTPException:
    """Map a lifecycle error to its HTTP status."""
    if isinstance(e, JobNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, RatingExistsError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, (InvalidStateError, InvalidResponseError, JobUpdateError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _get_job_or_404(db: Session, job_id: UUID, org_id: UUID):
    job = job_crud.get_by_id(db, job_id, org_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/", status_code=201, response_model=JobCreateResponse)
def create_job(
    request: JobCreateRequest,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """
    Create a job and dispatch it.

    Flow:
    1. Duplicate check (idempotency key, 24 hours): returns the existing job
    2. Job saved with job_status=matching, compliance policy linked
    3. SLA timers created; the dispatch stage starts now
    4. Nearby technicians matched (when the job has coordinates)
    5. Dispatched to warm technicians or cold leads unless
       dispatch_immediately is false

    A dispatch that finds nobody is reported in dispatch_error; the job is
    still created.
    """
    if request.org_id and request.org_id != org_id:
        raise HTTPException(status_code=403, detail="You are not a member of this organization")

    try:
        result = job_lifecycle.create_with_dispatch(db, request.model_dump(), org_id=org_id, user_id=current_user.id)
    except JobCreationError as e:
        logger.error(f"Error creating job: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create job: {str(e)}")

    return JobCreateResponse(
        job=JobResponse.model_validate(result["job"]),
        duplicate=result["duplicate"],
        dispatch=DispatchResult(**result["dispatch"]) if result["dispatch"] else None,
        dispatch_error=result["dispatch_error"],
        sla_timers=[SLATimerResponse.model_validate(timer) for timer in result["sla_timers"]],
    )


@router.get("/", response_model=JobListResponse)
def list_jobs(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: Optional[JobStatus] = None,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """
    List the organization's jobs, newest first.

    Args:
        page: 1-based page number
        per_page: Page size (max 100)
        status: Optional job_status filter
    """
    jobs, total = job_crud.get_multi(db, org_id, page=page, per_page=per_page, status=status)
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/analytics/summary", response_model=AnalyticsSummary)
def analytics_summary(
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Job counts by status bucket and trade, month-over-month change and recent jobs."""
    summary = job_crud.analytics_summary(db, org_id)
    summary["recent_jobs"] = [JobResponse.model_validate(job) for job in summary["recent_jobs"]]
    return AnalyticsSummary(**summary)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Retrieve a job by ID."""
    return _get_job_or_404(db, job_id, org_id)


@router.post("/{job_id}/dispatch", response_model=DispatchResult)
def dispatch_job(
    job_id: UUID,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """
    Dispatch a job to warm technicians, or cold leads when none are nearby.

    A job that was already dispatched returns its existing outreach with
    zero counts.
    """
    try:
        result = job_lifecycle.dispatch(db, job_id, actor_id=current_user.id, org_id=org_id)
    except (JobUpdateError, InvalidStateError) as e:
        db.rollback()
        raise _http_error(e)

    return DispatchResult(**result)


@router.post("/{job_id}/assign", response_model=JobTransitionResponse)
def assign_job(
    job_id: UUID,
    request: AssignRequest,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Assign a technician to a matching or dispatched job."""
    try:
        job = job_lifecycle.assign(db, job_id, request.technician_id, actor_id=current_user.id, org_id=org_id)
    except (JobUpdateError, InvalidStateError) as e:
        db.rollback()
        raise _http_error(e)

    return JobTransitionResponse(job=JobResponse.model_validate(job), message="Technician assigned")


@router.delete("/{job_id}/assign", response_model=JobTransitionResponse)
def unassign_job(
    job_id: UUID,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Remove the assigned technician; the job goes back to pending."""
    try:
        job = job_lifecycle.unassign(db, job_id, actor_id=current_user.id, org_id=org_id)
    except (JobUpdateError, InvalidStateError) as e:
        db.rollback()
        raise _http_error(e)

    return JobTransitionResponse(job=JobResponse.model_validate(job), message="Technician unassigned")


@router.post("/{job_id}/complete", response_model=JobTransitionResponse)
def complete_job(
    job_id: UUID,
    request: CompleteRequest,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Mark an assigned job completed, optionally rating the technician (1-5)."""
    try:
        job = job_lifecycle.complete(
            db, job_id, rating=request.rating, notes=request.notes,
            actor_id=current_user.id, org_id=org_id,
        )
    except (JobUpdateError, InvalidStateError) as e:
        db.rollback()
        raise _http_error(e)

    return JobTransitionResponse(job=JobResponse.model_validate(job), message="Job completed")


@router.get("/{job_id}/respond", response_model=WorkOrderSummary)
def get_work_order(
    job_id: UUID,
    http_request: Request,
    recipient: Optional[UUID] = None,
    db: Session = Depends(get_db)
):
    """
    Public job details for the response page linked from dispatch emails.

    No authentication: the recipient id in the link identifies the caller.
    """
    check_public_response_rate_limit(get_client_ip(http_request))

    try:
        summary = job_lifecycle.get_work_order_summary(db, job_id, recipient)
    except JobUpdateError as e:
        raise _http_error(e)

    return WorkOrderSummary(**summary)


@router.post("/{job_id}/respond", response_model=RespondResponse)
def respond_to_work_order(
    job_id: UUID,
    request: RespondRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """
    Record a recipient's answer ("interested" or "decline") to a work order.

    No authentication: the recipient id in the link identifies the caller.
    """
    check_public_response_rate_limit(get_client_ip(http_request))

    try:
        job_lifecycle.record_response(db, job_id, request.recipient_id, request.response, reason=request.reason)
    except (JobUpdateError, InvalidResponseError) as e:
        db.rollback()
        raise _http_error(e)

    message = (
        "Thanks! The dispatcher has been notified of your interest."
        if request.response == job_lifecycle.RESPONSE_INTERESTED
        else "Thanks for letting us know."
    )
    return RespondResponse(response=request.response, message=message)


@router.get("/{job_id}/technicians", response_model=List[JobTechnicianResponse])
def list_job_technicians(
    job_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Technicians and cold leads the job was dispatched to, with distance and rating."""
    job = _get_job_or_404(db, job_id, org_id)
    return [JobTechnicianResponse(**entry) for entry in get_job_technicians(db, job)]


@router.get("/{job_id}/rate")
def get_job_rating(
    job_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Whether the job has been rated, and the rating if so."""
    job = _get_job_or_404(db, job_id, org_id)
    rating = job_lifecycle.get_rating(db, job.id)
    return {
        "has_rating": rating is not None,
        "rating": JobRatingResponse.model_validate(rating) if rating else None,
    }


@router.post("/{job_id}/rate", status_code=201, response_model=JobRatingResponse)
def rate_job(
    job_id: UUID,
    request: RateJobRequest,
    current_user: User = Depends(get_current_user),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Rate the assigned technician on four 1-5 dimensions (once per job)."""
    try:
        rating = job_lifecycle.rate_job(
            db, job_id,
            quality_rating=request.quality_rating,
            timeliness_rating=request.timeliness_rating,
            communication_rating=request.communication_rating,
            professionalism_rating=request.professionalism_rating,
            comments=request.comments,
            actor_id=current_user.id,
            org_id=org_id,
        )
    except (JobUpdateError, InvalidStateError, RatingExistsError) as e:
        db.rollback()
        raise _http_error(e)

    return rating


@router.get("/{job_id}/sla", response_model=JobSLAResponse)
def get_job_sla(
    job_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """SLA status of a job: overall status, active stage and time remaining."""
    job = _get_job_or_404(db, job_id, org_id)
    timers = sorted(job.sla_timers, key=lambda timer: job_lifecycle.STAGE_ORDER.index(timer.stage))

    active = get_active_timer(timers)
    remaining = get_time_remaining(active) if active else None

    return JobSLAResponse(
        job_id=job.id,
        status=calculate_sla_status(timers),
        active_stage=active.stage.value if active else None,
        time_remaining_minutes=round(remaining, 1) if remaining is not None else None,
        time_remaining_display=format_minutes(remaining) if remaining is not None else None,
        timers=[SLATimerResponse.model_validate(timer) for timer in timers],
    )


@router.get("/{job_id}/history", response_model=List[AuditEntryResponse])
def get_job_history(
    job_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Audit trail of the job, most recent first."""
    job = _get_job_or_404(db, job_id, org_id)
    return get_entity_history(db, "job", job.id)
