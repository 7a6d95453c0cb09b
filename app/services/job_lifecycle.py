"""
Job lifecycle: creation with dispatch, assignment and completion.

Status flow:

    matching -> dispatched -> assigned -> completed
                                 |
                             (unassign)
                                 v
                              pending

Every transition completes the matching SLA stage and writes an audit entry
in the same transaction as the status change. Warm emails and the cold
campaign push are queued to Celery after the dispatch is committed.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.celery_utils import queue_task_safely, queue_tasks_safely
from app.core.config import settings
from app.core.timeutils import ensure_utc, utcnow
from app.models.job import Job, JobStatus
from app.models.lead import ColdLead, OutreachUnsubscribe
from app.models.outreach import DispatchMethod, OutreachStatus, WorkOrderOutreach, WorkOrderRecipient
from app.models.rating import JobRating
from app.models.sla import SLAStage, SLATimer
from app.models.technician import Technician
from app.services.audit_service import log_audit
from app.services.compliance import attach_policy_to_job
from app.services.contractor_scoring import rank_contractors
from app.services.geo import haversine_miles
from app.services.lead_pipeline import run_lead_pipeline
from app.services.matching import find_matching_technicians, visible_org_ids
from app.services.sla_engine import STAGE_ORDER, complete_sla_stage, initialize_sla_timers
from app.tasks.dispatch_tasks import push_cold_leads_task, send_warm_dispatch_email_task

logger = logging.getLogger(__name__)

IDEMPOTENCY_WINDOW = timedelta(hours=24)
ASSIGNABLE_STATUSES = (JobStatus.MATCHING, JobStatus.DISPATCHED)
DISPATCHABLE_STATUSES = (JobStatus.MATCHING, JobStatus.PENDING, JobStatus.DISPATCHED)
RESPONSE_INTERESTED = "interested"
RESPONSE_DECLINE = "decline"


class JobCreationError(Exception):
    """Job could not be inserted"""
    pass


class JobUpdateError(Exception):
    """Job (or a related row) is missing or could not be updated"""
    pass


class JobNotFoundError(JobUpdateError):
    pass


class InvalidStateError(Exception):
    """Transition not allowed from the job's current status"""
    pass


class RatingExistsError(Exception):
    pass


class InvalidResponseError(ValueError):
    pass


def generate_idempotency_key(org_id: UUID, address_text: str, trade_needed: str, scheduled_at: Optional[datetime] = None) -> str:
    """First 32 hex chars of sha256("{org}:{address}:{trade}:{scheduled_at or ''}")."""
    scheduled = scheduled_at.isoformat() if scheduled_at else ""
    data = f"{org_id}:{address_text}:{trade_needed}:{scheduled}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:32]


def find_recent_duplicate(db: Session, idempotency_key: str, now: Optional[datetime] = None) -> Optional[Job]:
    """A job created with the same key within the last 24 hours."""
    now = now or utcnow()
    cutoff = now - IDEMPOTENCY_WINDOW

    candidates = (
        db.query(Job)
        .filter(Job.idempotency_key == idempotency_key)
        .order_by(Job.created_at.desc())
        .all()
    )
    for job in candidates:
        if job.created_at is None or ensure_utc(job.created_at) >= cutoff:
            return job
    return None


def get_job(db: Session, job_id: UUID, org_id: Optional[UUID] = None) -> Job:
    """
    Raises:
        JobNotFoundError: No such job (in that organization, when given)
    """
    query = db.query(Job).filter(Job.id == job_id)
    if org_id is not None:
        query = query.filter(Job.org_id == org_id)
    job = query.first()
    if job is None:
        raise JobNotFoundError("Job not found")
    return job


def _ordered_timers(timers: List[SLATimer]) -> List[SLATimer]:
    return sorted(timers, key=lambda timer: STAGE_ORDER.index(timer.stage))


def create_with_dispatch(
    db: Session,
    data: Dict[str, Any],
    org_id: UUID,
    user_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Create a job, link its policy, start SLA timers, match and dispatch.

    Args:
        data: Job fields (JobCreateRequest.model_dump()); may carry
              idempotency_key, policy_id, sla_config and dispatch_immediately
        org_id: Owning organization
        user_id: Creating user

    Returns:
        {"job", "duplicate", "dispatch", "dispatch_error", "sla_timers"}

    Raises:
        JobCreationError: If the insert fails
    """
    now = now or utcnow()
    data = dict(data)

    sla_config = data.pop("sla_config", None)
    dispatch_immediately = data.pop("dispatch_immediately", None)
    policy_id = data.pop("policy_id", None)
    data.pop("org_id", None)

    idempotency_key = data.pop("idempotency_key", None) or generate_idempotency_key(
        org_id, data["address_text"], data["trade_needed"], data.get("scheduled_at")
    )

    existing = find_recent_duplicate(db, idempotency_key, now)
    if existing is not None:
        logger.info(f"Duplicate job request {idempotency_key}, returning job {existing.id}")
        return {
            "job": existing,
            "duplicate": True,
            "dispatch": None,
            "dispatch_error": None,
            "sla_timers": _ordered_timers(existing.sla_timers),
        }

    try:
        job = Job(
            org_id=org_id,
            created_by_user_id=user_id,
            job_title=data["job_title"],
            description=data.get("description"),
            trade_needed=data["trade_needed"],
            required_certifications=data.get("required_certifications") or [],
            address_text=data["address_text"],
            city=data.get("city"),
            state=data.get("state"),
            lat=data.get("lat"),
            lng=data.get("lng"),
            urgency=data["urgency"],
            scheduled_at=data.get("scheduled_at"),
            duration=data.get("duration"),
            budget_min=data.get("budget_min"),
            budget_max=data.get("budget_max"),
            pay_rate=data.get("pay_rate"),
            contact_name=data.get("contact_name") or "",
            contact_phone=data.get("contact_phone") or "",
            contact_email=data.get("contact_email") or "",
            job_status=JobStatus.MATCHING,
            idempotency_key=idempotency_key,
        )
        db.add(job)
        db.flush()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create job: {e}")
        raise JobCreationError(str(e))

    if policy_id:
        attach_policy_to_job(db, policy_id, job)

    initialize_sla_timers(db, job, config=sla_config, now=now)

    if job.lat is not None and job.lng is not None:
        find_matching_technicians(db, job)

    log_audit(
        db, "job", job.id, "created", actor_id=user_id, org_id=org_id,
        metadata={
            "trade": job.trade_needed,
            "urgency": job.urgency,
            "dispatch_requested": dispatch_immediately is not False,
        },
    )
    db.commit()
    db.refresh(job)
    logger.info(f"Created job {job.id}: {job.job_title} ({job.trade_needed}, {job.urgency.value})")

    dispatch_result = None
    dispatch_error = None
    if dispatch_immediately is not False:
        try:
            dispatch_result = dispatch(db, job.id, actor_id=user_id, now=now)
        except (JobUpdateError, InvalidStateError) as e:
            db.rollback()
            dispatch_error = str(e)
            logger.warning(f"Job {job.id} created but not dispatched: {e}")
        db.refresh(job)

    return {
        "job": job,
        "duplicate": False,
        "dispatch": dispatch_result,
        "dispatch_error": dispatch_error,
        "sla_timers": _ordered_timers(job.sla_timers),
    }


def _unsubscribed_emails():
    return select(OutreachUnsubscribe.email)


def find_warm_technicians(db: Session, job: Job, radius_miles: Optional[float] = None) -> List[Technician]:
    """Signed-up, available, subscribed technicians of the job's trade within the dispatch radius."""
    radius_miles = radius_miles if radius_miles is not None else settings.DISPATCH_RADIUS_MILES
    if job.lat is None or job.lng is None:
        return []

    technicians = (
        db.query(Technician)
        .filter(
            Technician.org_id.in_(visible_org_ids(job)),
            func.lower(Technician.trade) == job.trade_needed.lower(),
            Technician.is_available.is_(True),
            Technician.signed_up.is_(True),
            Technician.unsubscribed_at.is_(None),
            Technician.lat.isnot(None),
            Technician.lng.isnot(None),
            ~func.lower(Technician.email).in_(_unsubscribed_emails()),
        )
        .all()
    )
    return [
        technician for technician in technicians
        if haversine_miles(job.lat, job.lng, technician.lat, technician.lng) <= radius_miles
    ]


def find_cold_leads(db: Session, job: Job, limit: Optional[int] = None) -> List[ColdLead]:
    """Never-dispatched, subscribed cold leads with the job's trade and state."""
    query = db.query(ColdLead).filter(
        func.lower(ColdLead.trade_type) == job.trade_needed.lower(),
        ColdLead.unsubscribed_at.is_(None),
        ColdLead.last_dispatched_at.is_(None),
        ~func.lower(ColdLead.email).in_(_unsubscribed_emails()),
    )
    if job.state:
        query = query.filter(ColdLead.state == job.state)
    return query.order_by(ColdLead.created_at.asc()).limit(limit or settings.COLD_LEAD_BATCH_SIZE).all()


def _dispatch_message(job: Job, warm_sent: int, cold_sent: int) -> str:
    if warm_sent > 0 and cold_sent == 0:
        return f"Dispatched to {warm_sent} registered {job.trade_needed} contractors"
    if cold_sent > 0 and warm_sent == 0:
        return f"Dispatched to {cold_sent} cold leads (no registered contractors in area)"
    if warm_sent > 0 and cold_sent > 0:
        return f"Dispatched to {warm_sent} registered + {cold_sent} cold leads"
    return f"No contractors found in {job.city or job.state or 'this area'}"


def dispatch(db: Session, job_id: UUID, actor_id: Optional[UUID] = None, org_id: Optional[UUID] = None,
             now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Send a job to warm technicians, or to cold leads when none are nearby.

    Cold leads come from the cold_leads table; when it has none for the
    job's trade and state the lead pipeline is run to produce some.

    Returns:
        {"success", "outreach_id", "warm_sent", "cold_sent",
         "total_recipients", "message", "pipeline_stats"}

    Raises:
        JobNotFoundError: Unknown job
        InvalidStateError: Job is assigned, completed or cancelled
        JobUpdateError: Nobody to dispatch to
    """
    now = now or utcnow()
    job = get_job(db, job_id, org_id)

    existing = db.query(WorkOrderOutreach).filter(WorkOrderOutreach.job_id == job.id).first()
    if existing is not None:
        return {
            "success": True,
            "outreach_id": existing.id,
            "warm_sent": 0,
            "cold_sent": 0,
            "total_recipients": 0,
            "message": "Dispatch already exists for this job",
            "pipeline_stats": existing.pipeline_stats,
        }

    if job.job_status not in DISPATCHABLE_STATUSES:
        raise InvalidStateError(f"Job cannot be dispatched in '{job.job_status.value}' state")

    ranked = rank_contractors(find_warm_technicians(db, job), job.scheduled_at, now)
    warm_technicians = [entry["technician"] for entry in ranked]

    cold_leads: List[ColdLead] = []
    pipeline_stats = None
    if not warm_technicians:
        cold_leads = find_cold_leads(db, job)

        if not cold_leads:
            logger.info(f"No cold leads for {job.trade_needed} in {job.state}, running lead pipeline")
            pipeline = run_lead_pipeline(
                db, job,
                select_limit=20,
                verify_limit=10,
                min_confidence=70,
                skip_if_cold_exists=False,
            )
            pipeline_stats = {
                "ran": pipeline["pipeline_ran"],
                "selected": pipeline["selected"],
                "verified": pipeline["verified"],
                "moved": pipeline["moved_to_cold"],
                "credits_used": pipeline["hunter_credits_used"],
                "error": pipeline["error"],
            }
            if pipeline["cold_lead_ids"]:
                cold_leads = (
                    db.query(ColdLead)
                    .filter(ColdLead.id.in_(pipeline["cold_lead_ids"]), ColdLead.unsubscribed_at.is_(None))
                    .limit(settings.COLD_LEAD_BATCH_SIZE)
                    .all()
                )

    total_recipients = len(warm_technicians) + len(cold_leads)
    if total_recipients == 0:
        raise JobUpdateError(
            f"No {job.trade_needed} technicians or leads available in {job.city or job.state or 'this area'}"
        )

    for lead in cold_leads:
        lead.last_dispatched_at = now
        lead.dispatch_count = (lead.dispatch_count or 0) + 1

    outreach = WorkOrderOutreach(
        job_id=job.id,
        org_id=job.org_id,
        status=OutreachStatus.PENDING,
        total_recipients=total_recipients,
        pipeline_stats=pipeline_stats,
    )
    db.add(outreach)
    db.flush()

    warm_recipients = []
    for technician in warm_technicians:
        recipient = WorkOrderRecipient(
            outreach_id=outreach.id,
            job_id=job.id,
            technician_id=technician.id,
            dispatch_method=DispatchMethod.SENDGRID_WARM,
            email=technician.email,
        )
        db.add(recipient)
        warm_recipients.append(recipient)

    for lead in cold_leads:
        db.add(WorkOrderRecipient(
            outreach_id=outreach.id,
            job_id=job.id,
            cold_lead_id=lead.id,
            dispatch_method=DispatchMethod.INSTANTLY_COLD,
            email=lead.email,
        ))
    db.flush()

    if not job.sla_timers:
        initialize_sla_timers(db, job, now=now)

    warm_sent = len(warm_recipients)
    cold_sent = len(cold_leads)

    outreach.status = OutreachStatus.ACTIVE
    outreach.warm_sent = warm_sent
    outreach.cold_sent = cold_sent
    outreach.dispatched_at = now

    previous_status = job.job_status
    job.job_status = JobStatus.DISPATCHED
    complete_sla_stage(db, job.id, SLAStage.DISPATCH, now)

    log_audit(
        db, "job", job.id, "dispatched", actor_id=actor_id, org_id=job.org_id,
        changes={"job_status": [previous_status, JobStatus.DISPATCHED]},
        metadata={"outreach_id": outreach.id, "warm_sent": warm_sent, "cold_sent": cold_sent},
    )
    db.commit()

    queue_tasks_safely(
        send_warm_dispatch_email_task,
        ({"recipient_id": str(recipient.id)} for recipient in warm_recipients),
    )
    if cold_sent:
        queue_task_safely(push_cold_leads_task, outreach_id=str(outreach.id))

    message = _dispatch_message(job, warm_sent, cold_sent)
    logger.info(f"Job {job.id}: {message}")

    return {
        "success": True,
        "outreach_id": outreach.id,
        "warm_sent": warm_sent,
        "cold_sent": cold_sent,
        "total_recipients": total_recipients,
        "message": message,
        "pipeline_stats": pipeline_stats,
    }


def assign(db: Session, job_id: UUID, technician_id: UUID, actor_id: Optional[UUID] = None,
           org_id: Optional[UUID] = None, now: Optional[datetime] = None) -> Job:
    """
    Assign a technician to a matching or dispatched job.

    Raises:
        JobNotFoundError, InvalidStateError, JobUpdateError (unknown technician)
    """
    job = get_job(db, job_id, org_id)

    if job.job_status not in ASSIGNABLE_STATUSES:
        raise InvalidStateError(f"Job cannot be assigned in '{job.job_status.value}' state")

    technician = db.query(Technician).filter(Technician.id == technician_id).first()
    if technician is None:
        raise JobUpdateError("Technician not found")

    previous_status = job.job_status
    previous_tech_id = job.assigned_tech_id

    job.job_status = JobStatus.ASSIGNED
    job.assigned_tech_id = technician.id
    complete_sla_stage(db, job.id, SLAStage.ASSIGNMENT, now)

    log_audit(
        db, "job", job.id, "assigned", actor_id=actor_id, org_id=job.org_id,
        changes={
            "job_status": [previous_status, JobStatus.ASSIGNED],
            "assigned_tech_id": [previous_tech_id, technician.id],
        },
    )
    db.commit()
    db.refresh(job)

    logger.info(f"Assigned technician {technician.id} ({technician.full_name}) to job {job.id}")
    return job


def unassign(db: Session, job_id: UUID, actor_id: Optional[UUID] = None, org_id: Optional[UUID] = None) -> Job:
    """Move an assigned job back to pending and clear its technician."""
    job = get_job(db, job_id, org_id)

    if job.job_status != JobStatus.ASSIGNED:
        raise InvalidStateError("Job is not currently assigned")

    previous_tech_id = job.assigned_tech_id
    job.job_status = JobStatus.PENDING
    job.assigned_tech_id = None

    log_audit(
        db, "job", job.id, "updated", actor_id=actor_id, org_id=job.org_id,
        changes={
            "job_status": [JobStatus.ASSIGNED, JobStatus.PENDING],
            "assigned_tech_id": [previous_tech_id, None],
        },
    )
    db.commit()
    db.refresh(job)

    logger.info(f"Unassigned technician {previous_tech_id} from job {job.id}")
    return job


def complete(db: Session, job_id: UUID, rating: Optional[float] = None, notes: Optional[str] = None,
             actor_id: Optional[UUID] = None, org_id: Optional[UUID] = None, now: Optional[datetime] = None) -> Job:
    """
    Complete an assigned job.

    An open arrival stage is closed along with the completion stage. When a
    rating is given, the assigned technician's running average and job
    count are updated.
    """
    now = now or utcnow()
    job = get_job(db, job_id, org_id)

    if job.job_status != JobStatus.ASSIGNED:
        raise InvalidStateError("Only assigned jobs can be completed")

    job.job_status = JobStatus.COMPLETED
    complete_sla_stage(db, job.id, SLAStage.ARRIVAL, now)
    complete_sla_stage(db, job.id, SLAStage.COMPLETION, now)

    if rating and job.assigned_tech_id:
        technician = db.query(Technician).filter(Technician.id == job.assigned_tech_id).first()
        if technician is not None:
            current = technician.average_rating or 0
            total_jobs = technician.total_jobs or 0
            technician.average_rating = round(((current * total_jobs) + rating) / (total_jobs + 1), 1)
            technician.total_jobs = total_jobs + 1

    log_audit(
        db, "job", job.id, "completed", actor_id=actor_id, org_id=job.org_id,
        changes={"job_status": [JobStatus.ASSIGNED, JobStatus.COMPLETED]},
        metadata={"rating": rating, "notes": notes, "technician_id": job.assigned_tech_id},
    )
    db.commit()
    db.refresh(job)

    logger.info(f"Completed job {job.id}")
    return job


def get_recipient(db: Session, job_id: UUID, recipient_id: UUID) -> WorkOrderRecipient:
    recipient = (
        db.query(WorkOrderRecipient)
        .filter(WorkOrderRecipient.id == recipient_id, WorkOrderRecipient.job_id == job_id)
        .first()
    )
    if recipient is None:
        raise JobNotFoundError("Recipient not found for this job")
    return recipient


def record_response(db: Session, job_id: UUID, recipient_id: UUID, response: str,
                    reason: Optional[str] = None, now: Optional[datetime] = None) -> WorkOrderRecipient:
    """
    Record a recipient's "interested" or "decline" answer.

    The outreach replied/qualified counters of the recipient's channel are
    incremented on the first interested answer only.

    Raises:
        InvalidResponseError: response is neither "interested" nor "decline"
        JobNotFoundError: recipient does not belong to the job
    """
    if response not in (RESPONSE_INTERESTED, RESPONSE_DECLINE):
        raise InvalidResponseError("Response must be 'interested' or 'decline'")

    now = now or utcnow()
    recipient = get_recipient(db, job_id, recipient_id)
    first_reply = not recipient.reply_received

    recipient.reply_received = True
    recipient.reply_received_at = now

    if response == RESPONSE_INTERESTED:
        recipient.ai_qualified = True
        recipient.qualified_at = now
        recipient.qualification_reason = reason or "Clicked interested link in email"

        if first_reply:
            outreach = recipient.outreach
            if recipient.dispatch_method == DispatchMethod.SENDGRID_WARM:
                outreach.warm_replied = (outreach.warm_replied or 0) + 1
                outreach.warm_qualified = (outreach.warm_qualified or 0) + 1
            else:
                outreach.cold_replied = (outreach.cold_replied or 0) + 1
                outreach.cold_qualified = (outreach.cold_qualified or 0) + 1
    else:
        recipient.ai_qualified = False
        recipient.qualification_reason = reason or "Clicked decline link in email"

    db.commit()
    db.refresh(recipient)

    logger.info(f"Recipient {recipient.id} responded '{response}' to job {job_id}")
    return recipient


def get_work_order_summary(db: Session, job_id: UUID, recipient_id: Optional[UUID] = None) -> Dict[str, Any]:
    """Public job details shown to a recipient before they respond."""
    job = get_job(db, job_id)

    already_responded = False
    if recipient_id is not None:
        already_responded = get_recipient(db, job.id, recipient_id).reply_received

    return {
        "job_id": job.id,
        "job_title": job.job_title,
        "trade_needed": job.trade_needed,
        "city": job.city,
        "state": job.state,
        "urgency": job.urgency,
        "scheduled_at": job.scheduled_at,
        "pay_rate": job.pay_rate,
        "job_status": job.job_status,
        "already_responded": already_responded,
    }


def get_rating(db: Session, job_id: UUID) -> Optional[JobRating]:
    return db.query(JobRating).filter(JobRating.job_id == job_id).first()


def rate_job(
    db: Session,
    job_id: UUID,
    quality_rating: int,
    timeliness_rating: int,
    communication_rating: int,
    professionalism_rating: int,
    comments: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    org_id: Optional[UUID] = None,
) -> JobRating:
    """
    Rate the technician of a job (once per job).

    The overall rating is the mean of the four scores; the technician's
    average is recomputed from all of their ratings.

    Raises:
        RatingExistsError: Job already rated
        InvalidStateError: No technician assigned to the job
    """
    job = get_job(db, job_id, org_id)

    if get_rating(db, job.id) is not None:
        raise RatingExistsError("Job has already been rated")

    if job.assigned_tech_id is None:
        raise InvalidStateError("Job has no assigned technician to rate")

    scores = [quality_rating, timeliness_rating, communication_rating, professionalism_rating]
    rating = JobRating(
        job_id=job.id,
        technician_id=job.assigned_tech_id,
        rated_by_user_id=actor_id,
        quality_rating=quality_rating,
        timeliness_rating=timeliness_rating,
        communication_rating=communication_rating,
        professionalism_rating=professionalism_rating,
        overall_rating=round(sum(scores) / len(scores), 2),
        comments=comments,
    )
    db.add(rating)
    db.flush()

    average = (
        db.query(func.avg(JobRating.overall_rating))
        .filter(JobRating.technician_id == job.assigned_tech_id)
        .scalar()
    )
    technician = db.query(Technician).filter(Technician.id == job.assigned_tech_id).first()
    if technician is not None and average is not None:
        technician.average_rating = round(float(average), 2)

    log_audit(
        db, "job", job.id, "rated", actor_id=actor_id, org_id=job.org_id,
        metadata={"technician_id": job.assigned_tech_id, "overall_rating": rating.overall_rating},
    )
    db.commit()
    db.refresh(rating)
    return rating
