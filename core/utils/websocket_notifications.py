"""
WebSocket notification utilities for real-time dashboard updates.
Centralized functions for pushing workflow events to the superadmin
dashboard, drivers, restaurant kitchens and order tracking pages.

Every message has the shape {'type': event, 'data': {...}, 'timestamp': iso}
once it reaches the browser; the transport is the Channels layer.
"""
import time
import logging
import threading
from django.conf import settings
from django.utils import timezone
from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync

logger = logging.getLogger(__name__)

SUPERADMIN_GROUP = 'superadmin_dashboard'

# Channels handler name on every consumer that relays these events
RELAY_MESSAGE_TYPE = 'dashboard.event'


def driver_group(driver_id):
    return f"driver_{driver_id}"


def restaurant_group(restaurant_id):
    return f"restaurant_{restaurant_id}"


def order_group(order_id):
    return f"order_{order_id}"


def _send_websocket_message(group_name, message_data):
    """
    Internal helper to send WebSocket message with timing and error handling.
    """
    start_time = time.time()
    try:
        channel_layer = get_channel_layer()
        if not channel_layer:
            logger.warning(f"No channel layer configured. Skipping message to {group_name}")
            return False

        async_to_sync(channel_layer.group_send)(group_name, message_data)

        duration = time.time() - start_time
        if duration > 0.5:  # Log slow sends
            logger.warning(f"Slow WebSocket send to {group_name}: {duration:.2f}s")
        else:
            logger.debug(f"Sent WebSocket message to {group_name} in {duration:.3f}s")
        return True
    except Exception as e:
        error_msg = str(e)
        if "10054" in error_msg or "forcibly closed" in error_msg.lower():
            logger.error(f"Redis connection lost while sending to {group_name}. This is usually transient or means Redis is overloaded.")
        else:
            logger.error(f"Failed to send WebSocket message to {group_name}: {e}")
        return False


def _fire_and_forget_notification(group_name, message_data):
    """
    Send notification in a separate thread so request handlers never wait on Redis.
    """
    if getattr(settings, 'WEBSOCKET_SEND_IN_THREAD', True):
        threading.Thread(target=_send_websocket_message, args=(group_name, message_data), daemon=True).start()
    else:
        _send_websocket_message(group_name, message_data)


def broadcast_event(event_type, data, groups):
    """
    Push one workflow event to each of the given groups.
    """
    message = {
        'type': RELAY_MESSAGE_TYPE,
        'event': event_type,
        'data': data,
        'timestamp': timezone.now().isoformat(),
    }
    for group_name in groups:
        _fire_and_forget_notification(group_name, message)
    return True


def _money(value):
    return float(value) if value is not None else None


def _driver_payload(driver):
    return {
        'driver_id': driver.id,
        'name': driver.name,
        'phone_number': driver.phone_number,
        'is_approved': driver.is_approved,
        'is_online': driver.is_online,
        'is_available': driver.is_available,
        'is_blocked': driver.is_blocked,
        'credit_balance': _money(driver.credit_balance),
        'last_online': driver.last_online.isoformat() if driver.last_online else None,
    }


def _order_groups(order):
    groups = [SUPERADMIN_GROUP, restaurant_group(order.restaurant_id), order_group(order.id)]
    if order.driver_id:
        groups.append(driver_group(order.driver_id))
    return groups


# Drivers

def notify_driver_registered(driver):
    return broadcast_event('driver_registered', _driver_payload(driver), [SUPERADMIN_GROUP])


def notify_driver_decision(driver, approved, reason=''):
    data = _driver_payload(driver)
    if not approved:
        data['reason'] = reason
    event = 'driver_approved' if approved else 'driver_rejected'
    return broadcast_event(event, data, [SUPERADMIN_GROUP, driver_group(driver.id)])


def notify_driver_status_updated(driver):
    return broadcast_event(
        'driver_status_updated',
        _driver_payload(driver),
        [SUPERADMIN_GROUP, driver_group(driver.id)]
    )


def notify_driver_blocked(driver, blocked):
    event = 'driver_blocked' if blocked else 'driver_unblocked'
    return broadcast_event(event, _driver_payload(driver), [SUPERADMIN_GROUP, driver_group(driver.id)])


def notify_driver_location_updated(driver, active_order_id=None):
    data = {
        'driver_id': driver.id,
        'name': driver.name,
        'latitude': _money(driver.current_latitude),
        'longitude': _money(driver.current_longitude),
        'last_location_update': driver.last_location_update.isoformat() if driver.last_location_update else None,
    }
    groups = [SUPERADMIN_GROUP]
    if active_order_id:
        # Customer tracking page follows the driver on the active order
        groups.append(order_group(active_order_id))
    return broadcast_event('driver_location_updated', data, groups)


# Restaurants

def notify_restaurant_created(restaurant):
    data = {
        'restaurant_id': restaurant.id,
        'name': restaurant.name,
        'phone_number': restaurant.phone_number,
        'is_approved': restaurant.is_approved,
    }
    return broadcast_event('restaurant_created', data, [SUPERADMIN_GROUP])


def notify_restaurant_decision(restaurant, approved, reason=''):
    data = {
        'restaurant_id': restaurant.id,
        'name': restaurant.name,
        'is_approved': restaurant.is_approved,
        'is_active': restaurant.is_active,
    }
    if not approved:
        data['reason'] = reason
    event = 'restaurant_approved' if approved else 'restaurant_rejected'
    return broadcast_event(event, data, [SUPERADMIN_GROUP, restaurant_group(restaurant.id)])


def notify_restaurant_blocked(restaurant, blocked):
    data = {
        'restaurant_id': restaurant.id,
        'name': restaurant.name,
        'is_active': restaurant.is_active,
    }
    event = 'restaurant_blocked' if blocked else 'restaurant_unblocked'
    return broadcast_event(event, data, [SUPERADMIN_GROUP, restaurant_group(restaurant.id)])


def notify_menu_item_decision(item):
    """Kitchen staff hear back on the items they submitted."""
    data = {
        'item_id': item.id,
        'name': item.name,
        'category_id': item.category_id,
        'price': _money(item.price),
        'status': item.status,
        'reason': item.rejection_reason,
    }
    event = 'menu_item_approved' if item.status == 'active' else 'menu_item_rejected'
    return broadcast_event(event, data, [restaurant_group(item.restaurant_id)])


# Orders

def notify_order_created(order):
    data = {
        'order_id': order.id,
        'order_number': order.order_number,
        'restaurant_id': order.restaurant_id,
        'customer_id': order.customer_id,
        'total': _money(order.total),
        'payment_method': order.payment_method,
        'items_count': order.items.count(),
        'delivery_address': order.delivery_address,
        'status': order.status,
        'created_at': order.created_at.isoformat(),
    }
    return broadcast_event('order_created', data, [SUPERADMIN_GROUP, restaurant_group(order.restaurant_id)])


def notify_order_status_updated(order, previous_status, message=''):
    data = {
        'order_id': order.id,
        'order_number': order.order_number,
        'previous_status': previous_status,
        'status': order.status,
        'driver_id': order.driver_id,
        'message': message,
    }
    return broadcast_event('order_status_updated', data, _order_groups(order))


def notify_order_driver_assigned(order, driver):
    data = {
        'order_id': order.id,
        'order_number': order.order_number,
        'driver_id': driver.id,
        'driver_name': driver.name,
        'driver_phone': driver.phone_number,
        'restaurant_id': order.restaurant_id,
        'restaurant_name': order.restaurant.name,
        'delivery_address': order.delivery_address,
        'total': _money(order.total),
        'payment_method': order.payment_method,
        'status': order.status,
    }
    return broadcast_event('order_driver_assigned', data, _order_groups(order))


def notify_order_assignment_pending(order, reason):
    data = {
        'order_id': order.id,
        'order_number': order.order_number,
        'status': order.status,
        'reason': reason,
        'needs_manual_assignment': order.needs_manual_assignment,
    }
    return broadcast_event(
        'order_assignment_pending',
        data,
        [SUPERADMIN_GROUP, restaurant_group(order.restaurant_id)]
    )


# Credit

def notify_credit_request_submitted(credit_request):
    driver = credit_request.driver
    data = {
        'request_id': credit_request.id,
        'driver_id': driver.id,
        'driver_name': driver.name,
        'phone_number': driver.phone_number,
        'requested_amount': _money(credit_request.amount),
        'current_balance': _money(driver.credit_balance),
        'created_at': credit_request.created_at.isoformat(),
    }
    return broadcast_event('credit_request_submitted', data, [SUPERADMIN_GROUP, driver_group(driver.id)])


def notify_credit_request_decided(credit_request, new_balance):
    driver = credit_request.driver
    data = {
        'request_id': credit_request.id,
        'driver_id': driver.id,
        'driver_name': driver.name,
        'status': credit_request.status,
        'new_balance': _money(new_balance),
    }
    if credit_request.status == 'approved':
        event = 'credit_request_approved'
        data['approved_amount'] = _money(credit_request.amount)
    else:
        event = 'credit_request_rejected'
        data['reason'] = credit_request.rejection_reason
    return broadcast_event(event, data, [SUPERADMIN_GROUP, driver_group(driver.id)])


def notify_credit_settlement_failed(order, error_message):
    data = {
        'order_id': order.id,
        'order_number': order.order_number,
        'driver_id': order.driver_id,
        'amount': _money(order.total),
        'reason': error_message,
    }
    return broadcast_event('credit_settlement_failed', data, [SUPERADMIN_GROUP])
