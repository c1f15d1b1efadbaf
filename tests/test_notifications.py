"""
Service calls reach the right WebSocket groups with the relayed
{type, data, timestamp} shape.
"""
from datetime import datetime

from django.test import TransactionTestCase
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from credit import services as credit_services
from delivery import services as delivery_services
from delivery.routing import websocket_urlpatterns
from orders import services as order_services
from restaurants import menu

from .factories import (
    make_driver, make_menu_item, make_order, make_restaurant, make_superadmin, make_user,
    screenshot,
)

application = URLRouter(websocket_urlpatterns)


def communicator_for(path, user):
    communicator = WebsocketCommunicator(application, path)
    communicator.scope['user'] = user
    return communicator


class ServiceNotificationTests(TransactionTestCase):

    def setUp(self):
        self.admin = make_superadmin()
        self.driver = make_driver(balance='20.00')
        self.credit_request = credit_services.submit_credit_request(self.driver.id, '150', screenshot())

    async def _connect(self, path, user):
        communicator = communicator_for(path, user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        greeting = await communicator.receive_json_from()
        self.assertEqual(greeting['type'], 'connection_established')
        return communicator

    def assertRelayed(self, message, event, **data):
        self.assertEqual(set(message), {'type', 'data', 'timestamp'})
        self.assertEqual(message['type'], event)
        for key, value in data.items():
            self.assertEqual(message['data'][key], value, key)
        datetime.fromisoformat(message['timestamp'])

    async def test_credit_approval_reaches_dashboard_and_driver(self):
        dashboard = await self._connect('/ws/dashboard/', self.admin)
        driver_socket = await self._connect('/ws/driver/notifications/', self.driver.user)

        await database_sync_to_async(credit_services.approve_credit_request)(self.credit_request.id, self.admin)

        for communicator in (dashboard, driver_socket):
            self.assertRelayed(
                await communicator.receive_json_from(), 'credit_request_approved',
                request_id=self.credit_request.id, driver_id=self.driver.id,
                status='approved', approved_amount=150.0, new_balance=170.0,
            )
            await communicator.disconnect()

    async def test_credit_rejection_reaches_dashboard_and_driver(self):
        dashboard = await self._connect('/ws/dashboard/', self.admin)
        driver_socket = await self._connect('/ws/driver/notifications/', self.driver.user)

        await database_sync_to_async(credit_services.reject_credit_request)(
            self.credit_request.id, self.admin, 'Screenshot unreadable'
        )

        for communicator in (dashboard, driver_socket):
            self.assertRelayed(
                await communicator.receive_json_from(), 'credit_request_rejected',
                request_id=self.credit_request.id, status='rejected',
                reason='Screenshot unreadable', new_balance=20.0,
            )
            await communicator.disconnect()

    async def test_driver_registration_reaches_dashboard(self):
        user = await database_sync_to_async(make_user)('driver')
        dashboard = await self._connect('/ws/dashboard/', self.admin)

        driver = await database_sync_to_async(delivery_services.register_driver)(
            user, 'Abebe', '+251933000099'
        )

        self.assertRelayed(
            await dashboard.receive_json_from(), 'driver_registered',
            driver_id=driver.id, name='Abebe', is_approved=False,
        )
        await dashboard.disconnect()


class OrderNotificationTests(TransactionTestCase):

    def setUp(self):
        self.admin = make_superadmin()
        self.restaurant = make_restaurant()
        self.customer = make_user('customer')
        self.staff = make_user('restaurant_admin', restaurant=self.restaurant)
        self.order = make_order(restaurant=self.restaurant, customer=self.customer)

    async def _connect(self, path, user):
        communicator = communicator_for(path, user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        await communicator.receive_json_from()
        return communicator

    async def test_transition_reaches_dashboard_kitchen_and_tracking_page(self):
        sockets = [
            await self._connect('/ws/dashboard/', self.admin),
            await self._connect(f'/ws/restaurant/{self.restaurant.id}/', self.staff),
            await self._connect(f'/ws/orders/{self.order.id}/', self.customer),
        ]

        await database_sync_to_async(order_services.transition_order)(self.order.id, 'confirmed', self.admin)

        for communicator in sockets:
            message = await communicator.receive_json_from()
            self.assertEqual(set(message), {'type', 'data', 'timestamp'})
            self.assertEqual(message['type'], 'order_status_updated')
            self.assertEqual(message['data']['order_id'], self.order.id)
            self.assertEqual(message['data']['previous_status'], 'pending')
            self.assertEqual(message['data']['status'], 'confirmed')
            await communicator.disconnect()

    async def test_menu_decision_reaches_kitchen(self):
        item = await database_sync_to_async(make_menu_item)(
            restaurant=self.restaurant, name='Chechebsa', status='pending_approval'
        )
        kitchen = await self._connect(f'/ws/restaurant/{self.restaurant.id}/', self.staff)

        await database_sync_to_async(menu.reject_menu_item)(self.staff, item.id, 'Needs a photo')

        message = await kitchen.receive_json_from()
        self.assertEqual(message['type'], 'menu_item_rejected')
        self.assertEqual(message['data']['item_id'], item.id)
        self.assertEqual(message['data']['reason'], 'Needs a photo')
        self.assertTrue(await kitchen.receive_nothing())
        await kitchen.disconnect()
