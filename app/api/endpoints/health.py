"""
Health check and monitoring endpoints.

Provides detailed health status for the database, the Redis broker and the
outbound integrations.
"""

import logging
from typing import Dict, Any
import redis
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy import text, func
from datetime import datetime, timezone

from app.core.config import settings
from app.core.database import get_db
from app.models.job import Job, JobStatus
from app.models.sla import SLATimer
from app.models.technician import Technician

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns 200 OK if the service is running.
    Use this for simple uptime monitoring and load balancer health checks.
    """
    return {
        "status": "healthy",
        "timestamp": _timestamp()
    }


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Database connectivity
    - Redis (Celery broker) availability
    - Which outbound integrations are configured
    """
    health_status = {
        "status": "healthy",
        "timestamp": _timestamp(),
        "checks": {}
    }

    # Check database connectivity
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database error: {str(e)}"
        }

    # Check Redis broker; queued emails and SLA polling depend on it
    try:
        client = redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        client.ping()
        health_status["checks"]["redis"] = {
            "status": "healthy",
            "message": "Redis reachable"
        }
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        health_status["status"] = "degraded"
        health_status["checks"]["redis"] = {
            "status": "unhealthy",
            "message": f"Redis error: {str(e)}"
        }

    health_status["checks"]["integrations"] = {
        "sendgrid": bool(settings.SENDGRID_API_KEY and settings.SENDGRID_TEMPLATE_ID_WORK_ORDER),
        "instantly": bool(settings.INSTANTLY_API_KEY),
        "hunter": bool(settings.HUNTER_API_KEY),
        "google_maps": bool(settings.GOOGLE_MAPS_API_KEY),
        "openai": bool(settings.OPENAI_API_KEY),
    }

    return health_status


@router.get("/metrics", status_code=status.HTTP_200_OK)
def get_metrics(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Application metrics endpoint.

    Returns basic operational metrics:
    - Jobs by status
    - Available technicians
    - Breached SLA timers
    """
    try:
        jobs_by_status = {
            job_status.value: count
            for job_status, count in db.query(Job.job_status, func.count(Job.id)).group_by(Job.job_status).all()
        }
        return {
            "timestamp": _timestamp(),
            "metrics": {
                "total_jobs": sum(jobs_by_status.values()),
                "jobs_by_status": {s.value: jobs_by_status.get(s.value, 0) for s in JobStatus},
                "available_technicians": db.query(func.count(Technician.id)).filter(
                    Technician.is_available.is_(True),
                    Technician.unsubscribed_at.is_(None)
                ).scalar() or 0,
                "breached_sla_timers": db.query(func.count(SLATimer.id)).filter(
                    SLATimer.breached.is_(True)
                ).scalar() or 0,
            }
        }
    except Exception as e:
        logger.error(f"Failed to retrieve metrics: {e}")
        return {
            "error": "Failed to retrieve metrics",
            "message": str(e)
        }
