"""
Celery tasks for driver assignment and driver housekeeping.
"""
from celery import shared_task
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=getattr(settings, 'DRIVER_ASSIGNMENT_MAX_RETRIES', 3))
def assign_order_driver_async(self, order_id):
    """
    Retry driver assignment for an order. Delegates to service logic.
    """
    from delivery.services import finish_assignment_retries, process_order_assignment

    result = None
    try:
        result = process_order_assignment(order_id, max_retries=self.max_retries, current_retry=self.request.retries)
    finally:
        if not (result and result.get('retry')):
            finish_assignment_retries(order_id)

    if result.get('retry'):
        # Linear backoff
        delay = getattr(settings, 'DRIVER_ASSIGNMENT_RETRY_DELAY', 30)
        countdown = delay * (self.request.retries + 1)
        logger.info(f"⏳ Retrying assignment for order {order_id} in {countdown}s...")
        raise self.retry(countdown=countdown)

    return result


@shared_task
def sweep_unassigned_orders_task(limit=None):
    """
    Periodic task: assign drivers to preparing/ready orders still waiting.
    """
    from delivery.assignment import sweep_unassigned_orders

    return sweep_unassigned_orders(limit=limit)


@shared_task
def mark_inactive_drivers_offline_task(threshold_minutes=None):
    """
    Periodic task: take drivers offline when they stop checking in.
    """
    from delivery.services import mark_inactive_drivers_offline

    driver_ids = mark_inactive_drivers_offline(threshold_minutes)
    return {'success': True, 'count': len(driver_ids)}
