"""
SLA timers for the job lifecycle.

Each job gets four timers, one per stage (dispatch, assignment, arrival,
completion). Only the dispatch timer starts at creation; completing a stage
starts the next one. check_sla_timers is run periodically (Celery beat) and
records breach and warning alerts.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.rounding import round_half_up
from app.core.timeutils import ensure_utc, utcnow
from app.models.job import Job
from app.models.sla import SLAAlert, SLAAlertType, SLAStage, SLATimer

logger = logging.getLogger(__name__)

STAGE_ORDER = [SLAStage.DISPATCH, SLAStage.ASSIGNMENT, SLAStage.ARRIVAL, SLAStage.COMPLETION]

# Minutes per stage, keyed by job urgency
DEFAULT_SLA_BY_URGENCY: Dict[str, Dict[str, int]] = {
    "emergency": {"dispatch": 15, "assignment": 30, "arrival": 60, "completion": 240},
    "same_day": {"dispatch": 30, "assignment": 60, "arrival": 120, "completion": 480},
    "next_day": {"dispatch": 60, "assignment": 120, "arrival": 240, "completion": 720},
    "within_week": {"dispatch": 60, "assignment": 240, "arrival": 480, "completion": 1440},
    "flexible": {"dispatch": 120, "assignment": 480, "arrival": 720, "completion": 2880},
}

WARNING_FRACTION = 0.25


def get_default_sla(urgency) -> Dict[str, int]:
    """Stage targets for an urgency; unknown urgencies use within_week."""
    key = getattr(urgency, "value", urgency)
    return dict(DEFAULT_SLA_BY_URGENCY.get(key, DEFAULT_SLA_BY_URGENCY["within_week"]))


def initialize_sla_timers(db: Session, job: Job, config: Optional[Dict[str, int]] = None, now: Optional[datetime] = None) -> List[SLATimer]:
    """
    Create the four stage timers for a job and start the first one.

    Caller commits.
    """
    now = now or utcnow()
    config = config or get_default_sla(job.urgency)

    timers = []
    for index, stage in enumerate(STAGE_ORDER):
        timer = SLATimer(
            job_id=job.id,
            stage=stage,
            target_minutes=int(config[stage.value]),
            started_at=now if index == 0 else None,
        )
        db.add(timer)
        timers.append(timer)

    db.flush()
    logger.info(f"Initialized SLA timers for job {job.id}: {config}")
    return timers


def complete_sla_stage(db: Session, job_id: UUID, stage: SLAStage, now: Optional[datetime] = None) -> Optional[SLATimer]:
    """
    Complete a stage's open timer and start the next un-started stage.

    Returns the completed timer, or None when the job has no open timer for
    that stage. Caller commits.
    """
    now = now or utcnow()

    timers = db.query(SLATimer).filter(SLATimer.job_id == job_id).all()
    by_stage = {timer.stage: timer for timer in timers}

    timer = by_stage.get(stage)
    if timer is None or timer.completed_at is not None:
        return None

    if timer.started_at is None:
        timer.started_at = now
    timer.completed_at = now

    next_index = STAGE_ORDER.index(stage) + 1
    if next_index < len(STAGE_ORDER):
        next_timer = by_stage.get(STAGE_ORDER[next_index])
        if next_timer is not None and next_timer.started_at is None:
            next_timer.started_at = now

    db.flush()
    return timer


def _elapsed_minutes(timer: SLATimer, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(timer.started_at)).total_seconds() / 60


def check_sla_timers(db: Session, now: Optional[datetime] = None) -> Dict:
    """
    Scan running timers and record breaches and warnings.

    A timer breaches once elapsed time reaches its target. A warning is
    recorded at most once per timer, when the remaining time is positive and
    no more than 25% of the target.

    Returns:
        {"checked", "alerts", "breaches", "details": {"alerts": [...], "breaches": [...]}}
    """
    now = now or utcnow()

    timers = (
        db.query(SLATimer)
        .filter(
            SLATimer.started_at.isnot(None),
            SLATimer.completed_at.is_(None),
            SLATimer.breached.is_(False),
        )
        .all()
    )

    alerts = []
    breaches = []

    for timer in timers:
        elapsed = _elapsed_minutes(timer, now)
        remaining = timer.target_minutes - elapsed
        stage = timer.stage.value

        if elapsed >= timer.target_minutes:
            timer.breached = True
            timer.breach_time = now

            job = db.query(Job).filter(Job.id == timer.job_id).first()
            if job is not None:
                job.sla_breached = True

            db.add(SLAAlert(
                timer_id=timer.id,
                job_id=timer.job_id,
                alert_type=SLAAlertType.BREACH,
                message=f"SLA breached for {stage} stage. Exceeded {timer.target_minutes} minute target.",
            ))
            breaches.append({
                "job_id": str(timer.job_id),
                "stage": stage,
                "elapsed_minutes": round_half_up(elapsed),
            })
            continue

        if 0 < remaining <= timer.target_minutes * WARNING_FRACTION:
            existing_warning = (
                db.query(SLAAlert)
                .filter(SLAAlert.timer_id == timer.id, SLAAlert.alert_type == SLAAlertType.WARNING)
                .first()
            )
            if existing_warning is None:
                db.add(SLAAlert(
                    timer_id=timer.id,
                    job_id=timer.job_id,
                    alert_type=SLAAlertType.WARNING,
                    message=f"SLA warning for {stage} stage. Only {round_half_up(remaining)} minutes remaining.",
                ))
                alerts.append({
                    "job_id": str(timer.job_id),
                    "stage": stage,
                    "remaining_minutes": round_half_up(remaining),
                })

    db.commit()

    if breaches or alerts:
        logger.warning(f"SLA check: {len(breaches)} breaches, {len(alerts)} warnings across {len(timers)} timers")
    else:
        logger.debug(f"SLA check: {len(timers)} timers on time")

    return {
        "checked": len(timers),
        "alerts": len(alerts),
        "breaches": len(breaches),
        "details": {"alerts": alerts, "breaches": breaches},
    }


def get_active_timer(timers: List[SLATimer]) -> Optional[SLATimer]:
    """The running timer: started, not completed, not breached."""
    for timer in sorted(timers, key=lambda t: STAGE_ORDER.index(t.stage)):
        if timer.started_at is not None and timer.completed_at is None and not timer.breached:
            return timer
    return None


def get_time_remaining(timer: SLATimer, now: Optional[datetime] = None) -> float:
    """Minutes left on a timer, never negative."""
    if timer.completed_at is not None or timer.breached or timer.started_at is None:
        return 0
    now = now or utcnow()
    return max(0, timer.target_minutes - _elapsed_minutes(timer, now))


def calculate_sla_status(timers: List[SLATimer], now: Optional[datetime] = None) -> str:
    """
    Overall SLA status of a job: "no-sla", "breached", "completed",
    "warning" or "on-time".
    """
    if not timers:
        return "no-sla"

    if any(timer.breached and timer.completed_at is None for timer in timers):
        return "breached"

    if all(timer.completed_at is not None for timer in timers):
        return "completed"

    active = get_active_timer(timers)
    if active is None:
        return "on-time"

    now = now or utcnow()
    remaining = active.target_minutes - _elapsed_minutes(active, now)
    if 0 < remaining < active.target_minutes * WARNING_FRACTION:
        return "warning"

    return "on-time"


def format_minutes(minutes: float) -> str:
    """45 -> "45m", 120 -> "2h", 150 -> "2h 30m"."""
    if minutes < 60:
        return f"{round_half_up(minutes)}m"
    hours = int(minutes // 60)
    mins = round_half_up(minutes % 60)
    return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"
