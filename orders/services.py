"""
Order creation and status transitions with their side effects.

A transition commits first; driver assignment, cash settlement and driver
release run afterwards and never undo it. Their failures are logged,
flagged on the order and pushed to the superadmin dashboard.
"""
import logging
from decimal import Decimal
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import (
    InsufficientBalance, InvalidAmount, InvalidInput, InvalidState, InvalidTransition,
    MenuItemNotFound, MenuItemUnavailable, OrderNotFound, RestaurantNotFound, WorkflowError,
)
from core.utils.money import max_amount, parse_amount
from core.utils.task_helper import run_task_safe
from core.utils.websocket_notifications import (
    notify_order_created, notify_order_status_updated,
    notify_order_assignment_pending, notify_credit_settlement_failed,
)
from credit import ledger
from delivery.assignment import assign_driver, release_driver
from delivery.fees import quote_delivery
from restaurants.models import MenuItem, Restaurant
from .models import Order, OrderItem, OrderStatusChange
from . import state_machine

logger = logging.getLogger(__name__)

# Order money columns: DecimalField(max_digits=10)
ORDER_AMOUNT_DIGITS = 10

PAYMENT_METHOD_ALIASES = {
    'cod': 'cash',
    'cash_on_delivery': 'cash',
}

STATUS_MESSAGES = {
    'confirmed': 'Your order has been confirmed by the restaurant.',
    'preparing': 'The kitchen is preparing your order.',
    'ready_for_pickup': 'Your order is ready for pickup.',
    'driver_assigned': 'A driver has been assigned to your order.',
    'picked_up': 'Your order is on the way!',
    'delivered': 'Your order has been delivered. Enjoy your meal!',
    'cancelled': 'Your order has been cancelled.',
}

STAGE_TIMESTAMPS = {
    'confirmed': 'confirmed_at',
    'picked_up': 'picked_up_at',
    'delivered': 'delivered_at',
    'cancelled': 'cancelled_at',
}


def get_order(order_id):
    try:
        return Order.objects.select_related('restaurant', 'driver', 'customer').get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise OrderNotFound(f"Order {order_id} not found")


def _normalize_payment_method(payment_method):
    value = (payment_method or '').strip().lower()
    value = PAYMENT_METHOD_ALIASES.get(value, value)
    if value not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise InvalidInput(f"Invalid payment method: {payment_method}")
    return value


def _parse_items(restaurant, items):
    """
    Resolve order lines against the restaurant's menu. Names and prices
    always come from the menu, never from the client.
    """
    if not items:
        raise InvalidInput('Order must contain at least one item')

    parsed = []
    for index, item in enumerate(items, start=1):
        menu_item_id = item.get('menu_item_id', item.get('menu_item'))
        if menu_item_id in (None, ''):
            raise InvalidInput(f"Item {index} is missing menu_item_id")
        try:
            menu_item = MenuItem.objects.select_related('category').get(pk=menu_item_id)
        except (MenuItem.DoesNotExist, ValueError, TypeError):
            raise MenuItemNotFound(f"Menu item {menu_item_id} not found")
        if menu_item.restaurant_id != restaurant.id:
            raise InvalidInput(f"{menu_item.name} is not on the menu of {restaurant.name}")
        if not menu_item.is_orderable:
            raise MenuItemUnavailable(f"{menu_item.name} is not available right now")

        try:
            quantity = int(item.get('quantity', 1))
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid quantity for {menu_item.name}")
        if quantity < 1:
            raise InvalidInput(f"Quantity for {menu_item.name} must be at least 1")

        customizations = item.get('customizations') or {}
        if not isinstance(customizations, (dict, list)):
            raise InvalidInput(f"Invalid customizations for {menu_item.name}")

        if menu_item.price * quantity > max_amount(ORDER_AMOUNT_DIGITS):
            raise InvalidAmount(f"Quantity for {menu_item.name} is too large")

        parsed.append({
            'menu_item': menu_item,
            'name': menu_item.name,
            'unit_price': menu_item.price,
            'quantity': quantity,
            'customizations': customizations,
        })
    return parsed


def create_order(customer, restaurant_id, items, delivery_address, payment_method='cash',
                 tax=0, delivery_latitude=None, delivery_longitude=None,
                 contact_phone='', special_instructions=''):
    """
    Place an order in pending.

    Lines are priced from the menu and the delivery fee from the distance
    between restaurant and drop-off. The total is the sum of line totals
    plus delivery fee and tax.
    """
    try:
        restaurant = Restaurant.objects.get(pk=restaurant_id)
    except (Restaurant.DoesNotExist, ValueError, TypeError):
        raise RestaurantNotFound(f"Restaurant {restaurant_id} not found")
    if not restaurant.is_accepting_orders:
        raise InvalidState(f"{restaurant.name} is not accepting orders")

    delivery_address = (delivery_address or '').strip()
    if not delivery_address:
        raise InvalidInput('Delivery address is required')

    payment_method = _normalize_payment_method(payment_method)
    lines = _parse_items(restaurant, items)
    tax = parse_amount(tax, field='tax', allow_zero=True, max_digits=ORDER_AMOUNT_DIGITS)
    quote = quote_delivery(restaurant, delivery_latitude, delivery_longitude)
    delivery_fee = quote['delivery_fee']

    subtotal = sum((line['unit_price'] * line['quantity'] for line in lines), Decimal('0.00'))
    total = subtotal + delivery_fee + tax
    if total > max_amount(ORDER_AMOUNT_DIGITS):
        raise InvalidAmount(f"Order total cannot exceed {max_amount(ORDER_AMOUNT_DIGITS):,}")

    with transaction.atomic():
        order = Order.objects.create(
            customer=customer,
            restaurant=restaurant,
            payment_method=payment_method,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            tax=tax,
            total=total,
            delivery_address=delivery_address,
            delivery_latitude=delivery_latitude,
            delivery_longitude=delivery_longitude,
            delivery_distance_km=quote['distance_km'],
            contact_phone=contact_phone or getattr(customer, 'phone_number', '') or '',
            special_instructions=special_instructions or '',
            credit_settlement_status='pending' if payment_method == 'cash' else 'not_applicable',
        )
        for line in lines:
            OrderItem.objects.create(order=order, **line)

    logger.info(f"Order {order.order_number} created for {restaurant.name}: {total} ({payment_method})")
    notify_order_created(order)
    return order


def transition_order(order_id, target_status, actor, note=''):
    """
    Move an order to target_status along the lifecycle table.

    The status update is a compare-and-set on the status read, so two
    concurrent transitions cannot both apply. Returns the updated order.
    """
    target = state_machine.normalize_status(target_status)
    order = get_order(order_id)
    previous = order.status

    state_machine.check_transition(previous, target)
    if target in state_machine.DRIVER_REQUIRED_STATUSES and not order.driver_id:
        raise InvalidState('Order has no assigned driver')

    now = timezone.now()
    fields = {'status': target, 'updated_at': now}
    if target in STAGE_TIMESTAMPS:
        fields[STAGE_TIMESTAMPS[target]] = now
    if target == 'cancelled':
        fields['cancellation_reason'] = note or ''
        if order.is_cash:
            fields['credit_settlement_status'] = 'not_applicable'

    with transaction.atomic():
        guarded = Order.objects.filter(pk=order.pk, status=previous)
        if target in state_machine.DRIVER_REQUIRED_STATUSES:
            guarded = guarded.filter(driver__isnull=False)
        if not guarded.update(**fields):
            current = Order.objects.filter(pk=order.pk).values_list('status', flat=True).first()
            raise InvalidTransition(
                f"Order status changed to {current} while updating; cannot move to {target}"
            )
        OrderStatusChange.objects.create(
            order=order,
            from_status=previous,
            to_status=target,
            actor=actor if getattr(actor, 'pk', None) else None,
            note=note or '',
        )

    order = get_order(order.pk)
    logger.info(f"Order {order.order_number}: {previous} -> {target} by {actor}")

    _after_transition(order, previous, actor)
    order = get_order(order.pk)
    notify_order_status_updated(order, previous, STATUS_MESSAGES.get(order.status, ''))
    return order


def _after_transition(order, previous, actor):
    if order.status in state_machine.ASSIGNMENT_TRIGGER_STATUSES and not order.driver_id:
        attempt_assignment(order)

    if order.status == 'delivered' and order.is_cash and order.driver_id:
        settle_cash_order(order, actor)

    if order.status in state_machine.TERMINAL_STATUSES and order.driver_id:
        release_driver(order.driver_id, completed_delivery=order.status == 'delivered')


def attempt_assignment(order):
    """
    Best-effort assignment after a transition. On failure the order stays
    unassigned and a bounded retry is scheduled.
    """
    try:
        driver = assign_driver(order.id)
    except WorkflowError as e:
        logger.error(f"Driver assignment failed for order {order.order_number}: {e.message}")
        driver = None
    except Exception as e:
        logger.error(f"Error assigning driver for order {order.order_number}: {e}", exc_info=True)
        driver = None

    if driver is not None:
        return driver

    logger.warning(f"⚠ Order {order.order_number} left unassigned")
    order.refresh_from_db()
    notify_order_assignment_pending(order, 'No eligible driver available right now')
    schedule_assignment_retry(order.id)
    return None


def schedule_assignment_retry(order_id):
    """
    Queue the bounded retry task.

    An order gets at most one retry chain at a time: the chain claims the
    order with assignment_retry_pending and the task clears it when the
    chain ends. Orders already handed over to manual assignment are left
    alone. Without Celery the periodic sweep picks the order up instead.
    """
    from delivery.tasks import assign_order_driver_async

    claimed = Order.objects.filter(
        pk=order_id,
        driver__isnull=True,
        needs_manual_assignment=False,
        assignment_retry_pending=False,
    ).update(assignment_retry_pending=True)
    if not claimed:
        logger.info(f"Order {order_id} already has a retry in flight or awaits manual assignment")
        return False

    delay = getattr(settings, 'DRIVER_ASSIGNMENT_RETRY_DELAY', 30)
    queued = run_task_safe(assign_order_driver_async, order_id, countdown=delay)
    if not queued:
        Order.objects.filter(pk=order_id).update(assignment_retry_pending=False)
        logger.info(f"Order {order_id} will be retried by the unassigned order sweep")
    return queued


def settle_cash_order(order, actor=None):
    """
    Deduct a delivered cash order's total from the driver's credit.

    The order stays delivered either way; an insufficient balance flags
    the order for reconciliation.
    """
    if order.credit_settlement_status == 'settled':
        return True

    if order.total <= 0:
        Order.objects.filter(pk=order.pk).update(credit_settlement_status='settled', updated_at=timezone.now())
        return True

    try:
        ledger.debit(
            order.driver_id,
            order.total,
            kind='cod_settlement',
            order=order,
            actor=actor if getattr(actor, 'pk', None) else None,
            note=f"Cash order {order.order_number}",
        )
    except InsufficientBalance as e:
        Order.objects.filter(pk=order.pk).update(
            credit_settlement_status='needs_reconciliation',
            settlement_note=e.message[:255],
            updated_at=timezone.now(),
        )
        logger.error(f"Cash settlement failed for order {order.order_number}: {e.message}")
        order.refresh_from_db()
        notify_credit_settlement_failed(order, e.message)
        return False

    Order.objects.filter(pk=order.pk).update(
        credit_settlement_status='settled',
        settlement_note='',
        updated_at=timezone.now(),
    )
    logger.info(f"✓ Cash order {order.order_number} settled against driver {order.driver_id}")
    return True


def orders_visible_to(user):
    """Orders a user may see, scoped by role."""
    orders = Order.objects.select_related('restaurant', 'driver', 'customer').prefetch_related('items')
    if user.is_superadmin:
        return orders
    if user.is_restaurant_staff:
        return orders.filter(restaurant_id=user.restaurant_id)
    if user.is_driver:
        return orders.filter(driver__user=user)
    return orders.filter(customer=user)
