"""
CRUD operations for Job model.

Read-side queries for the jobs API: tenant-scoped lookup, paginated
listing and the analytics summary. Writes go through
app.services.job_lifecycle so that SLA timers and audit entries stay in step.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.core.timeutils import ensure_utc, utcnow
from app.models.job import Job, JobStatus

# Status values are grouped for reporting; legacy values map into the same buckets
STATUS_BUCKETS = {
    "pending": {"pending", "unassigned", "matching"},
    "assigned": {"assigned", "active", "in_progress", "dispatched"},
    "completed": {"completed", "done"},
    "archived": {"archived", "cancelled"},
}

RECENT_JOBS_LIMIT = 5


def get_by_id(db: Session, job_id: UUID, org_id: Optional[UUID] = None) -> Optional[Job]:
    """
    Retrieve a job by its ID.

    Args:
        db: Database session
        job_id: Job ID to retrieve
        org_id: When given, only a job of this organization is returned

    Returns:
        Job instance if found, None otherwise
    """
    query = db.query(Job).filter(Job.id == job_id)
    if org_id is not None:
        query = query.filter(Job.org_id == org_id)
    return query.first()


def get_multi(
    db: Session,
    org_id: UUID,
    page: int = 1,
    per_page: int = 20,
    status: Optional[JobStatus] = None
) -> Tuple[List[Job], int]:
    """
    Retrieve a page of an organization's jobs, newest first.

    Args:
        db: Database session
        org_id: Owning organization
        page: 1-based page number
        per_page: Page size
        status: Optional status filter

    Returns:
        (jobs on the page, total matching jobs)
    """
    query = db.query(Job).filter(Job.org_id == org_id)

    if status:
        query = query.filter(Job.job_status == status)

    total = query.count()
    jobs = (
        query.order_by(Job.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return jobs, total


def count_by_status(db: Session, org_id: UUID) -> Dict[str, int]:
    """Raw job counts keyed by status value."""
    rows = (
        db.query(Job.job_status, func.count(Job.id))
        .filter(Job.org_id == org_id)
        .group_by(Job.job_status)
        .all()
    )
    return {status.value: count for status, count in rows}


def _month_start(value: datetime, months_back: int = 0) -> datetime:
    year, month = value.year, value.month - months_back
    while month < 1:
        month += 12
        year -= 1
    return value.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def analytics_summary(db: Session, org_id: UUID, now: Optional[datetime] = None) -> Dict:
    """
    Job totals for an organization's dashboard.

    Returns:
        {"total_jobs", "by_status", "by_trade", "this_month", "last_month",
         "percent_change", "recent_jobs"}
    """
    now = ensure_utc(now or utcnow())
    jobs = db.query(Job).filter(Job.org_id == org_id).order_by(Job.created_at.desc()).all()

    by_status = {bucket: 0 for bucket in STATUS_BUCKETS}
    for status, count in count_by_status(db, org_id).items():
        for bucket, values in STATUS_BUCKETS.items():
            if status in values:
                by_status[bucket] += count

    by_trade = dict(Counter(job.trade_needed for job in jobs))

    this_month_start = _month_start(now)
    last_month_start = _month_start(now, 1)

    this_month = 0
    last_month = 0
    for job in jobs:
        created_at = ensure_utc(job.created_at)
        if created_at is None:
            continue
        if created_at >= this_month_start:
            this_month += 1
        elif created_at >= last_month_start:
            last_month += 1

    if last_month > 0:
        percent_change = round((this_month - last_month) / last_month * 100, 1)
    else:
        percent_change = 100.0 if this_month > 0 else 0.0

    return {
        "total_jobs": len(jobs),
        "by_status": by_status,
        "by_trade": by_trade,
        "this_month": this_month,
        "last_month": last_month,
        "percent_change": percent_change,
        "recent_jobs": jobs[:RECENT_JOBS_LIMIT],
    }
