"""
Periodic SLA polling, scheduled by Celery beat (see celery_app.beat_schedule).
"""

import logging
from celery import shared_task
from app.core.database import SessionLocal
from app.services.sla_engine import check_sla_timers

logger = logging.getLogger(__name__)


@shared_task(name="app.tasks.sla_tasks.check_sla_timers_task")
def check_sla_timers_task():
    """
    Record breaches and warnings for every running SLA timer.

    Returns the counts from check_sla_timers.
    """
    db = SessionLocal()
    try:
        result = check_sla_timers(db)
        logger.info(f"SLA poll: {result['checked']} timers checked, {result['breaches']} breaches, {result['alerts']} warnings")
        return {"status": "success", **result}
    except Exception as e:
        db.rollback()
        logger.error(f"Error checking SLA timers: {str(e)}")
        raise
    finally:
        db.close()
