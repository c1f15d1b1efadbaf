"""
Driver lifecycle services and the assignment retry step.
"""
import logging
from datetime import timedelta
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import (
    DriverNotFound, InvalidInput, InvalidState, OrderNotFound,
)
from core.utils.websocket_notifications import (
    notify_driver_registered, notify_driver_decision,
    notify_driver_status_updated, notify_driver_location_updated, notify_driver_blocked,
    notify_order_assignment_pending,
)
from delivery.assignment import assign_driver
from delivery.models import Driver
from orders.models import Order
from orders.state_machine import ACTIVE_STATUSES, ASSIGNMENT_TRIGGER_STATUSES

logger = logging.getLogger(__name__)


def get_driver(driver_id):
    try:
        return Driver.objects.select_related('user').get(pk=driver_id)
    except (Driver.DoesNotExist, ValueError, TypeError):
        raise DriverNotFound(f"Driver {driver_id} not found")


def get_active_order(driver_id):
    return Order.objects.filter(
        driver_id=driver_id,
        status__in=ACTIVE_STATUSES,
    ).select_related('restaurant').first()


def register_driver(user, name, phone_number, license_number='', vehicle_type='bike',
                    vehicle_plate='', license_image=None, id_card_image=None):
    """
    Create a driver profile awaiting superadmin approval.
    """
    if not user.is_driver:
        raise InvalidInput('Only driver accounts can register as drivers')
    if Driver.objects.filter(user=user).exists():
        raise InvalidState('Driver profile already exists')

    name = (name or '').strip()
    phone_number = (phone_number or '').strip()
    if not name:
        raise InvalidInput('Driver name is required')
    if not phone_number:
        raise InvalidInput('Phone number is required')

    try:
        with transaction.atomic():
            driver = Driver.objects.create(
                user=user,
                name=name,
                phone_number=phone_number,
                license_number=license_number or '',
                vehicle_type=vehicle_type or 'bike',
                vehicle_plate=vehicle_plate or '',
                license_image=license_image,
                id_card_image=id_card_image,
            )
    except IntegrityError:
        raise InvalidState(f"A driver with phone number {phone_number} is already registered")

    logger.info(f"Driver {driver.id} ({driver.name}) registered, awaiting approval")
    notify_driver_registered(driver)
    return driver


def approve_driver(driver_id, admin):
    now = timezone.now()
    updated = Driver.objects.filter(pk=driver_id, is_approved=False).update(
        is_approved=True,
        rejection_reason='',
        approved_at=now,
        updated_at=now,
    )
    driver = get_driver(driver_id)
    if not updated:
        raise InvalidState(f"Driver {driver.name} is already approved")

    logger.info(f"✓ Driver {driver.id} approved by {admin}")
    notify_driver_decision(driver, approved=True)
    return driver


def reject_driver(driver_id, admin, reason):
    """
    Reject (or revoke) a driver. The driver is taken offline.
    """
    reason = (reason or '').strip()
    if not reason:
        raise InvalidInput('Rejection reason is required')

    driver = get_driver(driver_id)
    if get_active_order(driver.id):
        raise InvalidState('Driver has an active order and cannot be rejected now')

    driver.is_approved = False
    driver.is_online = False
    driver.is_available = False
    driver.rejection_reason = reason
    driver.approved_at = None
    driver.save(update_fields=[
        'is_approved', 'is_online', 'is_available', 'rejection_reason', 'approved_at', 'updated_at'
    ])

    logger.info(f"Driver {driver.id} rejected by {admin}: {reason}")
    notify_driver_decision(driver, approved=False, reason=reason)
    return driver


def delete_driver(driver_id, admin):
    driver = get_driver(driver_id)
    if get_active_order(driver.id):
        raise InvalidState('Driver has an active order and cannot be deleted')

    name = driver.name
    driver.delete()
    logger.warning(f"Driver {driver_id} ({name}) deleted by {admin}")


def block_driver(driver_id, admin):
    """
    Suspend a driver. They go offline and stay out of assignment until
    unblocked. Refused while the driver is carrying an order.
    """
    driver = get_driver(driver_id)
    if get_active_order(driver.id):
        raise InvalidState('Driver has an active order and cannot be blocked now')

    updated = Driver.objects.filter(pk=driver.pk, is_blocked=False).update(
        is_blocked=True,
        is_online=False,
        is_available=False,
        updated_at=timezone.now(),
    )
    if not updated:
        raise InvalidState(f"Driver {driver.name} is already blocked")

    driver.refresh_from_db()
    logger.warning(f"Driver {driver.id} blocked by {admin}")
    notify_driver_blocked(driver, blocked=True)
    return driver


def unblock_driver(driver_id, admin):
    driver = get_driver(driver_id)
    updated = Driver.objects.filter(pk=driver.pk, is_blocked=True).update(
        is_blocked=False,
        updated_at=timezone.now(),
    )
    if not updated:
        raise InvalidState(f"Driver {driver.name} is not blocked")

    driver.refresh_from_db()
    logger.info(f"Driver {driver.id} unblocked by {admin}")
    notify_driver_blocked(driver, blocked=False)
    return driver


def set_driver_status(driver_id, is_online, is_available=None):
    """
    Toggle a driver online/offline and available/unavailable.

    Going online requires approval. Going offline always makes the driver
    unavailable. is_available defaults to is_online.
    """
    driver = get_driver(driver_id)
    is_online = bool(is_online)
    is_available = is_online if is_available is None else bool(is_available)

    if is_online and not driver.is_approved:
        raise InvalidState('Driver must be approved before going online')
    if is_online and driver.is_blocked:
        raise InvalidState('Driver account is blocked. Contact support.')

    if not is_online:
        is_available = False
    elif is_available and get_active_order(driver.id):
        # Stays busy until the current order ends
        is_available = False

    driver.is_online = is_online
    driver.is_available = is_available
    fields = ['is_online', 'is_available', 'updated_at']
    if is_online:
        driver.last_online = timezone.now()
        fields.append('last_online')
    driver.save(update_fields=fields)

    logger.info(f"Driver {driver.id} status: online={driver.is_online}, available={driver.is_available}")
    notify_driver_status_updated(driver)
    return driver


def parse_coordinate(value, name, limit):
    try:
        coordinate = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {name}: {value}")
    if not -limit <= coordinate <= limit:
        raise InvalidInput(f"{name.capitalize()} must be between -{limit} and {limit}")
    return round(coordinate, 6)


def update_driver_location(driver_id, latitude, longitude):
    latitude = parse_coordinate(latitude, 'latitude', 90)
    longitude = parse_coordinate(longitude, 'longitude', 180)

    driver = get_driver(driver_id)
    now = timezone.now()
    driver.current_latitude = latitude
    driver.current_longitude = longitude
    driver.last_location_update = now
    fields = ['current_latitude', 'current_longitude', 'last_location_update', 'updated_at']
    if driver.is_online:
        # A location report counts as a heartbeat
        driver.last_online = now
        fields.append('last_online')
    driver.save(update_fields=fields)
    driver.refresh_from_db()

    active_order = get_active_order(driver.id)
    notify_driver_location_updated(driver, active_order.id if active_order else None)
    return driver


def mark_inactive_drivers_offline(threshold_minutes=None):
    """
    Take drivers offline when they have not checked in recently.
    Drivers holding an active order are left alone.
    Returns the ids of the drivers that were taken offline.
    """
    if threshold_minutes is None:
        threshold_minutes = getattr(settings, 'DRIVER_OFFLINE_THRESHOLD_MINUTES', 10)
    cutoff = timezone.now() - timedelta(minutes=threshold_minutes)

    stale = Driver.objects.filter(is_online=True, last_online__lt=cutoff) | \
        Driver.objects.filter(is_online=True, last_online__isnull=True)
    stale = stale.exclude(pk__in=Order.objects.filter(
        driver__isnull=False, status__in=ACTIVE_STATUSES
    ).values('driver_id'))

    driver_ids = list(stale.values_list('id', flat=True))
    if not driver_ids:
        return []

    Driver.objects.filter(pk__in=driver_ids, is_online=True).update(
        is_online=False, is_available=False, updated_at=timezone.now()
    )
    for driver in Driver.objects.filter(pk__in=driver_ids):
        notify_driver_status_updated(driver)

    logger.info(f"Marked {len(driver_ids)} inactive drivers offline (threshold {threshold_minutes} min)")
    return driver_ids


def process_order_assignment(order_id, max_retries=None, current_retry=0):
    """
    One assignment attempt, used by the Celery retry task and the sweep.
    Returns a dict telling the caller whether a retry makes sense.
    """
    if max_retries is None:
        max_retries = getattr(settings, 'DRIVER_ASSIGNMENT_MAX_RETRIES', 3)

    logger.info(f"Processing driver assignment for order {order_id} (Attempt {current_retry + 1}/{max_retries + 1})")

    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order {order_id} not found")
        return {'success': False, 'error': 'Order not found', 'retry': False}

    if order.driver_id:
        return {'success': True, 'driver_id': order.driver_id, 'already_assigned': True}

    if order.status not in ASSIGNMENT_TRIGGER_STATUSES:
        logger.info(f"Order {order.order_number} is {order.status}; assignment no longer needed")
        return {'success': False, 'error': f'Order is {order.status}', 'retry': False}

    try:
        driver = assign_driver(order_id)
    except OrderNotFound:
        return {'success': False, 'error': 'Order not found', 'retry': False}

    if driver is not None:
        return {'success': True, 'driver_id': driver.id}

    if current_retry >= max_retries:
        _mark_for_manual_assignment(order_id, 'No eligible driver after retries')
        return {'success': False, 'error': 'No eligible driver', 'retry': False}
    return {'success': False, 'error': 'No eligible driver', 'retry': True}


def _mark_for_manual_assignment(order_id, reason):
    updated = Order.objects.filter(pk=order_id, driver__isnull=True).update(
        needs_manual_assignment=True, updated_at=timezone.now()
    )
    if updated:
        order = Order.objects.get(pk=order_id)
        logger.warning(f"Order {order.order_number} marked for manual assignment: {reason}")
        notify_order_assignment_pending(order, reason)


def finish_assignment_retries(order_id):
    """Release the order from its retry chain so a new one may start."""
    return Order.objects.filter(pk=order_id, assignment_retry_pending=True).update(
        assignment_retry_pending=False
    )
