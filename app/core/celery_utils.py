"""
Queueing helpers for Celery tasks sent from request handlers.

Dispatch commits its outreach rows first and only then queues delivery, so a
broker outage never rolls back a dispatch: the failure is logged and the
recipient stays unsent (email_sent=False) for a later retry.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Dict, Iterable, Tuple
from celery import Task
from kombu import Connection
from app.core.config import settings

logger = logging.getLogger(__name__)

QUEUE_TIMEOUT_SECONDS = 5

# Sends run off the event loop; uvicorn's loop interferes with kombu's pool
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="celery_queue")


def _queue_task_sync(task: Task, args: tuple, kwargs: dict) -> Tuple[bool, str, str]:
    """
    Send one task over a fresh broker connection.

    Returns:
        Tuple[bool, str, str]: (success, task_id, error_message)
    """
    try:
        with Connection(settings.REDIS_URL) as conn:
            result = task.apply_async(
                args=args,
                kwargs=kwargs,
                connection=conn,
                retry=True,
                retry_policy={
                    'max_retries': 3,
                    'interval_start': 0,
                    'interval_step': 0.2,
                    'interval_max': 0.2,
                }
            )
            return (True, result.id, "")
    except Exception as e:
        return (False, "", str(e))


def queue_task_safely(task: Task, *args, **kwargs) -> bool:
    """
    Queue a Celery task without letting broker errors reach the caller.

    Args:
        task: The Celery task to queue
        *args: Positional arguments for the task
        **kwargs: Keyword arguments for the task

    Returns:
        bool: True if the broker accepted the task

    Example:
        queue_task_safely(push_cold_leads_task, outreach_id=str(outreach.id))
    """
    future = _executor.submit(_queue_task_sync, task, args, kwargs)
    try:
        success, task_id, error = future.result(timeout=QUEUE_TIMEOUT_SECONDS)
    except FutureTimeoutError:
        success, task_id, error = False, "", f"timed out after {QUEUE_TIMEOUT_SECONDS}s"

    if success:
        logger.info(f"Task {task.name} queued: {task_id}")
        return True

    logger.error(f"Failed to queue task {task.name} with {kwargs}: {error}")
    return False


def queue_tasks_safely(task: Task, kwargs_list: Iterable[Dict]) -> int:
    """
    Queue one task per kwargs dict (e.g. one email per recipient).

    Returns:
        int: How many were queued; failures are logged individually
    """
    kwargs_list = list(kwargs_list)
    queued = sum(1 for kwargs in kwargs_list if queue_task_safely(task, **kwargs))

    if queued < len(kwargs_list):
        logger.warning(f"Queued {queued}/{len(kwargs_list)} {task.name} tasks")
    return queued
