"""
Celery application configuration.

This module configures Celery to use Redis as both the message broker and result backend.
Workers deliver work-order emails and push cold leads to Instantly; beat runs
the SLA timer check on a fixed interval.
"""

from celery import Celery
from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "field_dispatch_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

# Configure Celery
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task behavior
    task_track_started=True,  # Track when tasks start (for monitoring)
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # Warn at 4 minutes

    # Result backend
    result_expires=3600,  # Results expire after 1 hour

    # Worker behavior
    worker_prefetch_multiplier=1,  # Only fetch 1 task at a time
    worker_max_tasks_per_child=50,  # Restart worker after 50 tasks (prevent memory leaks)

    # Periodic tasks (celery beat)
    beat_schedule={
        "check-sla-timers": {
            "task": "app.tasks.sla_tasks.check_sla_timers_task",
            "schedule": float(settings.SLA_POLL_INTERVAL_SECONDS),
        },
    },
)

# Auto-discover tasks from app.tasks package
celery_app.autodiscover_tasks(['app'])
