"""
Driver assignment policy.

Eligible drivers are approved, unblocked, online and available, hold no
other active order and, for cash orders, have a credit balance covering
the order total. Among them the nearest driver inside the search radius wins;
drivers without a reported location come after located ones. Remaining
ties go to the driver who has been online the longest, then the lowest id.
Drivers located outside the radius are not considered.
"""
import math
import logging
from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import InvalidState, NoEligibleDriver, OrderNotFound
from core.utils.websocket_notifications import notify_order_driver_assigned
from delivery.models import Driver
from orders.models import Order
from orders.state_machine import ACTIVE_STATUSES, ASSIGNMENT_TRIGGER_STATUSES

logger = logging.getLogger(__name__)


def calculate_distance(lat1, lon1, lat2, lon2):
    """Calculate distance between two coordinates using Haversine formula (in km)."""
    R = 6371  # Earth's radius in kilometers

    lat1_rad = math.radians(float(lat1))
    lon1_rad = math.radians(float(lon1))
    lat2_rad = math.radians(float(lat2))
    lon2_rad = math.radians(float(lon2))

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = math.sin(dlat/2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return R * c


def _busy_driver_ids(exclude_order_id=None):
    active_orders = Order.objects.filter(driver__isnull=False, status__in=ACTIVE_STATUSES)
    if exclude_order_id is not None:
        active_orders = active_orders.exclude(pk=exclude_order_id)
    return active_orders.values('driver_id')


def eligible_drivers_queryset(order):
    """Drivers that may take this order, before distance ranking."""
    drivers = Driver.objects.filter(
        is_approved=True,
        is_blocked=False,
        is_online=True,
        is_available=True,
    ).exclude(pk__in=_busy_driver_ids(order.pk))
    if order.is_cash:
        drivers = drivers.filter(credit_balance__gte=order.total)
    return drivers


def find_eligible_drivers(order, radius_km=None):
    """
    Rank eligible drivers for the order.
    Returns a list of {'driver': Driver, 'distance': km or None}, best first.
    """
    if radius_km is None:
        radius_km = getattr(settings, 'DRIVER_SEARCH_RADIUS_KM', 10)

    origin = order.restaurant.get_coordinates()
    ranked = []
    for driver in eligible_drivers_queryset(order):
        position = driver.get_coordinates()
        distance = None
        if origin and position:
            distance = calculate_distance(origin[0], origin[1], position[0], position[1])
            if distance > radius_km:
                continue
        ranked.append({'driver': driver, 'distance': distance})

    def sort_key(candidate):
        driver = candidate['driver']
        distance = candidate['distance']
        online_since = driver.last_online.timestamp() if driver.last_online else float('inf')
        return (
            distance is None,
            distance if distance is not None else 0.0,
            online_since,
            driver.pk,
        )

    ranked.sort(key=sort_key)
    return ranked


def _claim_and_bind(order, driver):
    """
    Atomically take the driver and bind it to the order.

    The claim only succeeds while the driver is still assignable and the
    bind only while the order still has no driver; if the bind loses, the
    claim is rolled back. Returns 'assigned', 'driver_taken' or 'order_taken'.
    """
    now = timezone.now()
    with transaction.atomic():
        claim = Driver.objects.filter(
            pk=driver.pk,
            is_approved=True,
            is_blocked=False,
            is_online=True,
            is_available=True,
        ).exclude(pk__in=_busy_driver_ids(order.pk))
        if order.is_cash:
            claim = claim.filter(credit_balance__gte=order.total)

        if not claim.update(is_available=False, updated_at=now):
            return 'driver_taken'

        bound = Order.objects.filter(
            pk=order.pk,
            driver__isnull=True,
            status__in=ASSIGNMENT_TRIGGER_STATUSES,
        ).update(driver=driver, assigned_at=now, needs_manual_assignment=False, updated_at=now)
        if not bound:
            transaction.set_rollback(True)
            return 'order_taken'

    return 'assigned'


def assign_driver(order_id):
    """
    Assign the best eligible driver to the order.

    Returns the assigned Driver, the already-bound Driver if the order has
    one, or None when nobody is eligible or the order is not awaiting a
    driver.
    """
    try:
        order = Order.objects.select_related('restaurant', 'driver').get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(f"Order {order_id} not found")

    if order.driver_id:
        return order.driver

    if order.status not in ASSIGNMENT_TRIGGER_STATUSES:
        logger.info(f"Order {order.order_number} is {order.status}; not awaiting a driver")
        return None

    candidates = find_eligible_drivers(order)
    if not candidates:
        logger.warning(f"⚠ No eligible drivers for order {order.order_number}")
        return None

    for candidate in candidates:
        driver = candidate['driver']
        outcome = _claim_and_bind(order, driver)
        if outcome == 'assigned':
            order.refresh_from_db()
            driver.refresh_from_db()
            distance = candidate['distance']
            logger.info(
                f"✓ Driver {driver.id} assigned to order {order.order_number}"
                + (f" ({distance:.2f} km away)" if distance is not None else "")
            )
            notify_order_driver_assigned(order, driver)
            return driver
        if outcome == 'order_taken':
            logger.info(f"Order {order.order_number} was assigned or changed concurrently")
            order.refresh_from_db()
            return order.driver
        logger.debug(f"Driver {driver.id} was claimed concurrently, trying next candidate")

    logger.warning(f"⚠ All eligible drivers were claimed before order {order.order_number} could be bound")
    return None


def assign_driver_or_raise(order_id):
    """Admin 'assign now': like assign_driver but reports failure as an error."""
    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(f"Order {order_id} not found")

    if order.driver_id is None and order.status not in ASSIGNMENT_TRIGGER_STATUSES:
        raise InvalidState(
            f"Drivers can only be assigned to preparing or ready orders (order is {order.status})"
        )

    driver = assign_driver(order_id)
    if driver is None:
        raise NoEligibleDriver(f"No eligible driver is available for order {order.order_number}")
    return driver


def release_driver(driver_id, completed_delivery=False):
    """
    Make the driver available again after their order ended.
    Offline drivers stay unavailable until they go online.
    """
    now = timezone.now()
    if completed_delivery:
        Driver.objects.filter(pk=driver_id).update(
            total_deliveries=F('total_deliveries') + 1,
            updated_at=now,
        )
    released = Driver.objects.filter(pk=driver_id, is_online=True).update(is_available=True, updated_at=now)
    if released:
        logger.info(f"Driver {driver_id} is available again")
    return bool(released)


def sweep_unassigned_orders(limit=None, dry_run=False):
    """
    Retry assignment for preparing/ready orders still without a driver.
    Returns counts of checked, assigned and still-unassigned orders.
    """
    orders = Order.objects.filter(
        driver__isnull=True,
        status__in=ASSIGNMENT_TRIGGER_STATUSES,
    ).order_by('created_at', 'id')
    if limit:
        orders = orders[:limit]

    order_ids = list(orders.values_list('id', flat=True))
    result = {'checked': len(order_ids), 'assigned': 0, 'unassigned': 0}
    if dry_run:
        result['unassigned'] = len(order_ids)
        return result

    for order_id in order_ids:
        try:
            driver = assign_driver(order_id)
        except OrderNotFound:
            continue
        if driver is not None:
            result['assigned'] += 1
        else:
            result['unassigned'] += 1

    if order_ids:
        logger.info(
            f"Unassigned order sweep: {result['assigned']} assigned, "
            f"{result['unassigned']} still waiting out of {result['checked']}"
        )
    return result
