"""
WebSocket consumers for real-time notifications.

Workflow events are pushed to groups by core.utils.websocket_notifications
with the Channels type 'dashboard.event'; every consumer here relays them
to the browser as {'type': event, 'data': {...}, 'timestamp': iso}.
"""
import json
import logging
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async

from core.exceptions import WorkflowError
from core.utils.websocket_notifications import (
    SUPERADMIN_GROUP, driver_group, restaurant_group, order_group,
)

logger = logging.getLogger(__name__)


class EventRelayConsumer(AsyncWebsocketConsumer):
    """
    Base consumer: authorizes the connection, joins its groups and relays
    workflow events. Subclasses implement get_groups().
    """
    connected_message = 'Connected to notifications'

    async def connect(self):
        self.user = self.scope.get("user")
        self.group_names = []

        if self.user is None or self.user.is_anonymous:
            await self.close()
            return

        groups = await self.get_groups()
        if not groups:
            await self.close()
            return

        self.group_names = groups
        for group_name in self.group_names:
            await self.channel_layer.group_add(group_name, self.channel_name)

        await self.accept()

        # Send connection confirmation
        await self.send(text_data=json.dumps({
            'type': 'connection_established',
            'message': self.connected_message
        }))

    async def disconnect(self, close_code):
        for group_name in getattr(self, 'group_names', []):
            await self.channel_layer.group_discard(group_name, self.channel_name)

    async def get_groups(self):
        """Groups to join, or an empty list to refuse the connection."""
        return []

    async def receive(self, text_data):
        """Handle messages from WebSocket (ping/pong)."""
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            return

        if not isinstance(data, dict):
            return

        if data.get('type') == 'ping':
            # Heartbeat response
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': data.get('timestamp')
            }))
        else:
            await self.handle_message(data)

    async def handle_message(self, data):
        pass

    async def dashboard_event(self, event):
        """Relay a workflow event to the client."""
        await self.send(text_data=json.dumps({
            'type': event['event'],
            'data': event['data'],
            'timestamp': event['timestamp'],
        }))


class DashboardConsumer(EventRelayConsumer):
    """
    Superadmin dashboard: registrations, credit requests, order and
    driver activity across the platform.
    """
    connected_message = 'Connected to superadmin dashboard'

    async def get_groups(self):
        if not self.user.is_superadmin:
            return []
        return [SUPERADMIN_GROUP]


class DriverNotificationConsumer(EventRelayConsumer):
    """
    Driver app: assignments, approval and credit decisions. Drivers may
    also report their location over the socket.
    """
    connected_message = 'Connected to delivery notifications'

    async def get_groups(self):
        if not self.user.is_driver:
            return []
        self.driver_id = await self._get_driver_id()
        if self.driver_id is None:
            return []
        return [driver_group(self.driver_id)]

    @database_sync_to_async
    def _get_driver_id(self):
        from delivery.models import Driver
        return Driver.objects.filter(user=self.user).values_list('id', flat=True).first()

    async def handle_message(self, data):
        if data.get('type') != 'location':
            return

        try:
            await self._update_location(data.get('latitude'), data.get('longitude'))
        except WorkflowError as e:
            await self.send(text_data=json.dumps({
                'type': 'error',
                'message': e.message
            }))
            return

        await self.send(text_data=json.dumps({
            'type': 'location_ack',
            'latitude': data.get('latitude'),
            'longitude': data.get('longitude'),
        }))

    @database_sync_to_async
    def _update_location(self, latitude, longitude):
        from delivery.services import update_driver_location
        update_driver_location(self.driver_id, latitude, longitude)


class RestaurantConsumer(EventRelayConsumer):
    """
    Restaurant kitchen display: new orders, order status changes and menu
    review decisions.
    """
    connected_message = 'Connected to restaurant notifications'

    async def get_groups(self):
        restaurant_id = int(self.scope['url_route']['kwargs']['restaurant_id'])
        if not self.user.works_for(restaurant_id):
            return []
        return [restaurant_group(restaurant_id)]


class OrderTrackingConsumer(EventRelayConsumer):
    """
    Order tracking page: status changes and the assigned driver's location.
    """
    connected_message = 'Connected to order tracking'

    async def get_groups(self):
        order_id = int(self.scope['url_route']['kwargs']['order_id'])
        allowed = await self._can_track(order_id)
        if not allowed:
            return []
        return [order_group(order_id)]

    @database_sync_to_async
    def _can_track(self, order_id):
        from orders.models import Order
        order = Order.objects.select_related('driver').filter(pk=order_id).first()
        if order is None:
            return False
        if self.user.is_superadmin or order.customer_id == self.user.id:
            return True
        if self.user.is_restaurant_staff and self.user.restaurant_id == order.restaurant_id:
            return True
        return bool(order.driver and order.driver.user_id == self.user.id)
