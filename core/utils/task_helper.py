import logging
from django.conf import settings
from celery.exceptions import OperationalError

logger = logging.getLogger(__name__)


def run_task_safe(task_func, *args, countdown=None, **kwargs):
    """
    Queue a Celery task if Celery is enabled and the broker answers.

    Returns True when the task was queued. Returns False when Celery is
    disabled or unavailable; the caller then relies on the periodic
    sweep (or its management command) to pick the work up later.

    Args:
        task_func: The Celery task function
        *args: Arguments for the task
        countdown: Optional delay in seconds before the task runs
        **kwargs: Keyword arguments for the task
    """
    enable_celery = getattr(settings, 'ENABLE_CELERY', True)

    if not enable_celery:
        logger.debug(f"Celery disabled. {task_func.name} left for the periodic sweep.")
        return False

    try:
        result = task_func.apply_async(args=args, kwargs=kwargs, countdown=countdown)
        logger.debug(f"Task {task_func.name} queued via Celery: {result.id}")
        return True
    except (OperationalError, ConnectionError, OSError) as e:
        logger.warning(f"Failed to queue task {task_func.name} via Celery: {e}. Leaving it for the periodic sweep.")
        return False
