"""
Celery tasks package.

Tasks are organized by domain:
- dispatch_tasks: Warm work-order emails (SendGrid) and cold campaign pushes (Instantly)
- sla_tasks: Periodic SLA breach and warning detection
"""

from app.tasks import dispatch_tasks, sla_tasks

__all__ = ["dispatch_tasks", "sla_tasks"]
