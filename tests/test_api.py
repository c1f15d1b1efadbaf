from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from credit.models import CreditRequest
from delivery.models import Driver
from orders.models import Order
from users.models import User

from .factories import (
    make_driver, make_menu_item, make_order, make_restaurant, make_superadmin, make_user,
    screenshot,
)


class CreditApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_superadmin()
        self.driver = make_driver(balance='20.00')

    def _submit(self, amount='80', image=True):
        self.client.force_authenticate(self.driver.user)
        data = {'amount': amount}
        if image:
            data['proof_image'] = screenshot()
        return self.client.post('/api/credit/requests/', data, format='multipart')

    def test_submit_and_poll(self):
        response = self._submit()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['request']['status'], 'pending')

        response = self.client.get('/api/credit/status/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['balance'], Decimal('20.00'))
        self.assertEqual(response.data['currency'], 'ETB')
        self.assertIsNotNone(response.data['pending_request'])

    def test_submit_errors(self):
        response = self._submit(image=False)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Screenshot is required for credit request')

        response = self._submit(amount='-3')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'invalid_amount')

        self.assertEqual(self._submit().status_code, 201)
        response = self._submit()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'request_already_pending')

    def test_oversized_amount_is_a_client_error(self):
        for amount in ('1e30', '99999999999'):
            with self.subTest(amount=amount):
                response = self._submit(amount=amount)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.data['code'], 'invalid_amount')
        self.assertFalse(CreditRequest.objects.exists())

    def test_only_drivers_submit(self):
        self.client.force_authenticate(make_user('customer'))
        response = self.client.post('/api/credit/requests/', {'amount': '10', 'proof_image': screenshot()})
        self.assertEqual(response.status_code, 403)

    def test_review_queue(self):
        self._submit()
        credit_request = CreditRequest.objects.get()

        self.client.force_authenticate(self.driver.user)
        self.assertEqual(self.client.get('/api/credit/requests/pending/').status_code, 403)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/credit/requests/pending/')
        self.assertEqual(response.data['count'], 1)

        response = self.client.post(f'/api/credit/requests/{credit_request.id}/approve/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['new_balance'], Decimal('100.00'))

        response = self.client.post(f'/api/credit/requests/{credit_request.id}/approve/')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'request_not_pending')

        response = self.client.post('/api/credit/requests/999999/reject/', {'reason': 'x'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_reject_needs_reason(self):
        self._submit()
        credit_request = CreditRequest.objects.get()

        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/credit/requests/{credit_request.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            f'/api/credit/requests/{credit_request.id}/reject/', {'reason': 'Wrong account'}, format='json'
        )
        self.assertEqual(response.data['request']['status'], 'rejected')

    def test_manual_adjustment_and_history(self):
        self.client.force_authenticate(self.admin)
        url = f'/api/credit/drivers/{self.driver.id}/adjust/'

        response = self.client.post(url, {'operation': 'add', 'amount': '5', 'note': 'Fuel bonus'}, format='json')
        self.assertEqual(response.data['new_balance'], Decimal('25.00'))

        response = self.client.post(url, {'operation': 'deduct', 'amount': '30'}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'insufficient_balance')

        response = self.client.get(f'/api/credit/drivers/{self.driver.id}/transactions/')
        self.assertEqual(len(response.data['transactions']), 1)

        self.client.force_authenticate(self.driver.user)
        response = self.client.get('/api/credit/transactions/')
        self.assertEqual(response.data['balance'], Decimal('25.00'))


class OrderApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.restaurant = make_restaurant()
        self.customer = make_user('customer')
        self.staff = make_user('kitchen_staff', restaurant=self.restaurant)

    def test_customer_places_order(self):
        kitfo = make_menu_item(restaurant=self.restaurant, name='Kitfo', price='250.00')
        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/orders/', {
            'restaurant_id': self.restaurant.id,
            'items': [{'menu_item_id': kitfo.id, 'quantity': 2}],
            'delivery_address': 'CMC',
            'payment_method': 'cash',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['delivery_fee'], '15.00')
        self.assertEqual(response.data['total'], '515.00')
        self.assertEqual(response.data['items'][0]['menu_item'], kitfo.id)

        response = self.client.get('/api/orders/')
        self.assertEqual(len(response.data['orders']), 1)

    def test_unavailable_item_is_a_conflict(self):
        sold_out = make_menu_item(restaurant=self.restaurant, is_available=False)
        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/orders/', {
            'restaurant_id': self.restaurant.id,
            'items': [{'menu_item_id': sold_out.id}],
            'delivery_address': 'CMC',
        }, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'menu_item_unavailable')

    def test_delivery_fee_quote(self):
        response = self.client.post('/api/orders/delivery-fee/', {
            'restaurant_id': self.restaurant.id,
            'delivery_latitude': '9.020000',
            'delivery_longitude': '38.760000',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['distance_km'], Decimal('1.11'))
        self.assertEqual(response.data['delivery_fee'], Decimal('20.55'))
        self.assertEqual(response.data['estimated_minutes'], 3)
        self.assertEqual(response.data['currency'], 'ETB')

        response = self.client.post('/api/orders/delivery-fee/', {'restaurant_id': 999999,
                                    'delivery_latitude': '9.02', 'delivery_longitude': '38.76'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_only_customers_place_orders(self):
        self.client.force_authenticate(self.staff)
        response = self.client.post('/api/orders/', {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_restaurant_moves_order_forward(self):
        order = make_order(restaurant=self.restaurant, customer=self.customer)
        self.client.force_authenticate(self.staff)

        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['status'], 'confirmed')

        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, 403)

        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'ready'}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_unknown_status(self):
        order = make_order(restaurant=self.restaurant)
        self.client.force_authenticate(self.staff)
        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_customer_can_only_cancel_pending(self):
        order = make_order(restaurant=self.restaurant, customer=self.customer, status='confirmed')
        self.client.force_authenticate(self.customer)

        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, 403)

        Order.objects.filter(pk=order.pk).update(status='pending')
        response = self.client.post(
            f'/api/orders/{order.id}/status/', {'status': 'cancelled', 'note': 'Changed my mind'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['cancellation_reason'], 'Changed my mind')

    def test_driver_delivers_cash_order(self):
        driver = make_driver(balance='300.00', available=False)
        order = make_order(restaurant=self.restaurant, status='ready_for_pickup', driver=driver, total='120.00')
        self.client.force_authenticate(driver.user)

        for target in ('driver_assigned', 'picked_up', 'delivered'):
            response = self.client.post(f'/api/orders/{order.id}/status/', {'status': target}, format='json')
            self.assertEqual(response.status_code, 200, response.data)

        self.assertEqual(response.data['order']['credit_settlement_status'], 'settled')
        driver.refresh_from_db()
        self.assertEqual(driver.credit_balance, Decimal('180.00'))
        self.assertTrue(driver.is_available)

    def test_other_users_orders_are_hidden(self):
        order = make_order()
        self.client.force_authenticate(self.customer)
        response = self.client.get(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['code'], 'order_not_found')


class DriverApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_superadmin()

    def test_register_and_approve(self):
        user = make_user('driver')
        self.client.force_authenticate(user)
        response = self.client.post('/api/drivers/register/', {
            'name': 'Tesfaye',
            'phone_number': '+251944000001',
            'vehicle_type': 'scooter',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        driver_id = response.data['id']

        response = self.client.post('/api/drivers/me/status/', {'is_online': True}, format='json')
        self.assertEqual(response.status_code, 409)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/drivers/', {'status': 'pending'})
        self.assertEqual([d['id'] for d in response.data['drivers']], [driver_id])
        response = self.client.post(f'/api/drivers/{driver_id}/approve/')
        self.assertEqual(response.status_code, 200)

        self.client.force_authenticate(user)
        response = self.client.post('/api/drivers/me/status/', {'is_online': True}, format='json')
        self.assertEqual(response.data, {'message': 'Status updated', 'is_online': True, 'is_available': True})

    def test_driver_without_profile(self):
        self.client.force_authenticate(make_user('driver'))
        response = self.client.get('/api/drivers/me/')
        self.assertEqual(response.status_code, 404)

    def test_location_and_active_order(self):
        driver = make_driver(available=False)
        order = make_order(status='driver_assigned', driver=driver)
        self.client.force_authenticate(driver.user)

        response = self.client.post('/api/drivers/me/location/', {'latitude': 9.03, 'longitude': 38.74}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['latitude'], 9.03)

        response = self.client.get('/api/drivers/me/active-order/')
        self.assertEqual(response.data['active_order']['order_id'], order.id)

        response = self.client.post('/api/drivers/me/location/', {'latitude': 95, 'longitude': 38.74}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_admin_assign_now(self):
        driver = make_driver(balance='500.00')
        order = make_order(status='preparing')
        self.client.force_authenticate(self.admin)

        response = self.client.post(f'/api/drivers/assign/{order.id}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['driver']['id'], driver.id)

        other = make_order(status='preparing')
        response = self.client.post(f'/api/drivers/assign/{other.id}/')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'no_eligible_driver')

    def test_delete_driver(self):
        driver = make_driver()
        self.client.force_authenticate(self.admin)
        response = self.client.delete(f'/api/drivers/{driver.id}/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Driver.objects.filter(pk=driver.pk).exists())

    def test_block_and_unblock(self):
        driver = make_driver()
        self.client.force_authenticate(driver.user)
        self.assertEqual(self.client.post(f'/api/drivers/{driver.id}/block/').status_code, 403)

        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/drivers/{driver.id}/block/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['driver']['is_blocked'])
        response = self.client.get('/api/drivers/', {'status': 'blocked'})
        self.assertEqual([d['id'] for d in response.data['drivers']], [driver.id])

        self.client.force_authenticate(driver.user)
        response = self.client.post('/api/drivers/me/status/', {'is_online': True}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'invalid_state')

        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/drivers/{driver.id}/unblock/')
        self.assertFalse(response.data['driver']['is_blocked'])
        self.assertEqual(self.client.post(f'/api/drivers/{driver.id}/unblock/').status_code, 409)


class UserApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_self_registration(self):
        response = self.client.post('/api/users/register/', {
            'username': 'selam',
            'email': 'selam@example.com',
            'password': 'Injera-2024!',
            'password2': 'Injera-2024!',
            'user_type': 'driver',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(User.objects.get(username='selam').user_type, 'driver')

    def test_staff_accounts_need_restaurant(self):
        self.client.force_authenticate(make_superadmin())
        payload = {
            'username': 'kitchen1',
            'password': 'Injera-2024!',
            'password2': 'Injera-2024!',
            'user_type': 'kitchen_staff',
        }
        self.assertEqual(self.client.post('/api/users/staff/', payload, format='json').status_code, 400)

        payload['restaurant'] = make_restaurant().id
        response = self.client.post('/api/users/staff/', payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['user']['user_type'], 'kitchen_staff')


class PlatformAdminApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_superadmin()

    def test_dashboard_overview(self):
        make_order(status='delivered', total='75.00')
        make_order(status='preparing', needs_manual_assignment=True)
        make_driver(balance='40.00')
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/platform-admin/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['orders']['total_orders'], 2)
        self.assertEqual(response.data['orders']['delivered_revenue'], Decimal('75.00'))
        self.assertEqual(response.data['orders']['needs_manual_assignment'], 1)
        self.assertEqual(response.data['orders_by_status'], {'delivered': 1, 'preparing': 1})
        self.assertEqual(response.data['drivers']['outstanding_credit'], Decimal('40.00'))

    def test_monitor_flags(self):
        make_order(status='delivered', credit_settlement_status='needs_reconciliation')
        make_order(status='preparing')
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/platform-admin/orders/', {'flag': 'reconciliation'})
        self.assertEqual(response.data['count'], 1)

    def test_monitor_restaurant_filter(self):
        order = make_order(status='preparing')
        make_order(status='preparing')
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/platform-admin/orders/', {'restaurant': order.restaurant_id})
        self.assertEqual(response.data['count'], 1)

    def test_monitor_rejects_bad_filters(self):
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/platform-admin/orders/', {'restaurant': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'invalid_input')

        response = self.client.get('/api/platform-admin/orders/', {'flag': 'haunted'})
        self.assertEqual(response.status_code, 400)

    def test_superadmin_only(self):
        self.client.force_authenticate(make_user('customer'))
        self.assertEqual(self.client.get('/api/platform-admin/').status_code, 403)
