"""
Distance-based technician matching.

find_matching_technicians stores the ranked candidate list for a job in
job_candidates; get_job_technicians describes who a job was actually
dispatched to.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.job import Job, JobCandidate
from app.models.outreach import WorkOrderOutreach, WorkOrderRecipient
from app.models.technician import Technician
from app.services.geo import METERS_PER_MILE, distance_between, haversine_meters

logger = logging.getLogger(__name__)

DEFAULT_RATING = 4.5


def visible_org_ids(job: Job) -> list:
    """Organizations whose technicians a job may draw from."""
    return [job.org_id, settings.PUBLIC_POOL_ORG_ID]


def find_matching_technicians(
    db: Session,
    job: Job,
    max_distance_m: Optional[float] = None,
    restrict_state: bool = True,
) -> List[JobCandidate]:
    """
    Match available technicians of the job's trade within a radius.

    Candidates come from the job's organization or the public pool, must not
    be unsubscribed, and must have coordinates. When restrict_state is set and
    the job has a state, candidates outside that state are excluded.

    Previous candidate rows for the job are replaced. Ranks are 1..n by
    distance ascending, ties broken by technician id.

    Returns:
        The new JobCandidate rows (caller commits)
    """
    max_distance_m = max_distance_m if max_distance_m is not None else settings.MATCH_RADIUS_METERS

    db.query(JobCandidate).filter(JobCandidate.job_id == job.id).delete(synchronize_session=False)

    if job.lat is None or job.lng is None:
        logger.info(f"Job {job.id} has no coordinates, skipping matching")
        db.flush()
        return []

    query = db.query(Technician).filter(
        func.lower(Technician.trade) == job.trade_needed.lower(),
        Technician.is_available.is_(True),
        Technician.unsubscribed_at.is_(None),
        Technician.org_id.in_(visible_org_ids(job)),
        Technician.lat.isnot(None),
        Technician.lng.isnot(None),
    )
    if restrict_state and job.state:
        query = query.filter(or_(Technician.state.is_(None), func.upper(Technician.state) == job.state.upper()))

    within_radius = []
    for technician in query.all():
        meters = haversine_meters(job.lat, job.lng, technician.lat, technician.lng)
        if meters <= max_distance_m:
            within_radius.append((meters, str(technician.id), technician))

    within_radius.sort(key=lambda entry: (entry[0], entry[1]))

    candidates = []
    for rank, (meters, _, technician) in enumerate(within_radius, start=1):
        candidate = JobCandidate(
            job_id=job.id,
            technician_id=technician.id,
            distance_miles=round(meters / METERS_PER_MILE, 1),
            rank=rank,
        )
        db.add(candidate)
        candidates.append(candidate)

    db.flush()
    logger.info(f"Matched {len(candidates)} technicians for job {job.id} within {max_distance_m:.0f}m")
    return candidates


def get_job_technicians(db: Session, job: Job) -> List[Dict]:
    """
    Recipients of a job's outreach with distance and rating.

    Returns an empty list when the job has not been dispatched.
    """
    outreach = db.query(WorkOrderOutreach).filter(WorkOrderOutreach.job_id == job.id).first()
    if outreach is None:
        return []

    recipients = (
        db.query(WorkOrderRecipient)
        .filter(WorkOrderRecipient.outreach_id == outreach.id)
        .order_by(WorkOrderRecipient.created_at.asc())
        .all()
    )

    results = []
    for recipient in recipients:
        technician = recipient.technician
        cold_lead = recipient.cold_lead

        if technician is not None:
            distance = distance_between(job, technician)
            results.append({
                "recipient_id": recipient.id,
                "technician_id": technician.id,
                "cold_lead_id": None,
                "name": technician.full_name,
                "email": recipient.email,
                "phone": technician.phone,
                "trade": technician.trade,
                "distance_miles": round(distance, 1) if distance is not None else None,
                "rating": technician.average_rating or DEFAULT_RATING,
                "dispatch_method": recipient.dispatch_method.value,
                "email_sent": recipient.email_sent,
                "reply_received": recipient.reply_received,
                "ai_qualified": recipient.ai_qualified,
                "signed_up": technician.signed_up,
            })
        else:
            results.append({
                "recipient_id": recipient.id,
                "technician_id": None,
                "cold_lead_id": recipient.cold_lead_id,
                "name": (cold_lead.full_name or cold_lead.company_name) if cold_lead else None,
                "email": recipient.email,
                "phone": cold_lead.phone if cold_lead else None,
                "trade": cold_lead.trade_type if cold_lead else None,
                "distance_miles": None,
                "rating": DEFAULT_RATING,
                "dispatch_method": recipient.dispatch_method.value,
                "email_sent": recipient.email_sent,
                "reply_received": recipient.reply_received,
                "ai_qualified": recipient.ai_qualified,
                "signed_up": False,
            })

    return results
