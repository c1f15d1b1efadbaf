from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from core.exceptions import (
    InvalidAmount, InvalidInput, InvalidState, InvalidTransition, MenuItemNotFound,
    MenuItemUnavailable, OrderNotFound, RestaurantNotFound,
)
from orders import services, state_machine
from orders.models import Order, OrderStatusChange

from .factories import (
    make_driver, make_menu_category, make_menu_item, make_order, make_restaurant,
    make_superadmin, make_user,
)


class TransitionTableTests(TestCase):

    def test_forward_path(self):
        path = ['pending', 'confirmed', 'preparing', 'ready_for_pickup',
                'driver_assigned', 'picked_up', 'delivered']
        for current, target in zip(path, path[1:]):
            with self.subTest(current=current):
                self.assertTrue(state_machine.can_transition(current, target))

    def test_cancel_allowed_until_delivered(self):
        for status in state_machine.STATUSES:
            expected = status not in state_machine.TERMINAL_STATUSES
            with self.subTest(status=status):
                self.assertEqual(state_machine.can_transition(status, 'cancelled'), expected)

    def test_no_skipping_or_going_back(self):
        self.assertFalse(state_machine.can_transition('pending', 'preparing'))
        self.assertFalse(state_machine.can_transition('picked_up', 'ready_for_pickup'))
        self.assertFalse(state_machine.can_transition('confirmed', 'confirmed'))

    def test_terminal_statuses_have_no_targets(self):
        self.assertEqual(state_machine.allowed_targets('delivered'), frozenset())
        with self.assertRaises(InvalidTransition) as ctx:
            state_machine.check_transition('cancelled', 'pending')
        self.assertIn('already cancelled', ctx.exception.message)

    def test_normalize_status_aliases(self):
        self.assertEqual(state_machine.normalize_status('ready'), 'ready_for_pickup')
        self.assertEqual(state_machine.normalize_status(' Assigned '), 'driver_assigned')
        with self.assertRaises(InvalidInput):
            state_machine.normalize_status('teleported')


class CreateOrderTests(TestCase):

    def setUp(self):
        self.customer = make_user('customer', phone_number='+251911000000')
        self.restaurant = make_restaurant()
        self.category = make_menu_category(restaurant=self.restaurant, name='Fasting')
        self.shiro = make_menu_item(category=self.category, name='Shiro', price='80.00')
        self.juice = make_menu_item(category=self.category, name='Juice', price='35.50')

    def _order(self, items, **kwargs):
        kwargs.setdefault('delivery_address', 'Piassa')
        return services.create_order(self.customer, kwargs.pop('restaurant_id', self.restaurant.id), items, **kwargs)

    def test_total_is_computed_from_menu_prices(self):
        order = self._order(
            [{'menu_item_id': self.shiro.id, 'quantity': 2, 'unit_price': '1.00'},
             {'menu_item_id': self.juice.id}],
            payment_method='cod',
            tax='5.25',
        )

        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.payment_method, 'cash')
        self.assertEqual(order.subtotal, Decimal('195.50'))
        # No drop-off coordinates: base fee
        self.assertEqual(order.delivery_fee, Decimal('15.00'))
        self.assertIsNone(order.delivery_distance_km)
        self.assertEqual(order.total, Decimal('215.75'))
        self.assertEqual(order.credit_settlement_status, 'pending')
        self.assertEqual(order.contact_phone, '+251911000000')
        self.assertTrue(order.order_number.startswith('ORD'))

        shiro_line = order.items.get(menu_item=self.shiro)
        self.assertEqual((shiro_line.name, shiro_line.unit_price, shiro_line.line_total),
                         ('Shiro', Decimal('80.00'), Decimal('160.00')))

    def test_delivery_fee_follows_distance(self):
        # 0.01 degrees of latitude north of the restaurant, about 1.11 km
        order = self._order(
            [{'menu_item_id': self.shiro.id}],
            delivery_latitude='9.020000', delivery_longitude='38.760000',
        )

        self.assertEqual(order.delivery_distance_km, Decimal('1.11'))
        self.assertEqual(order.delivery_fee, Decimal('20.55'))
        self.assertEqual(order.total, Decimal('100.55'))

    def test_online_orders_are_not_settled(self):
        order = self._order([{'menu_item_id': self.shiro.id}], payment_method='online')
        self.assertEqual(order.credit_settlement_status, 'not_applicable')

    def test_closed_restaurant_refused(self):
        closed = make_restaurant(approved=False)
        with self.assertRaises(InvalidState) as ctx:
            self._order([{'menu_item_id': self.shiro.id}], restaurant_id=closed.id)
        self.assertIn('not accepting orders', ctx.exception.message)

    def test_items_must_be_orderable_here(self):
        other = make_menu_item(restaurant=make_restaurant(), name='Burger')
        pending = make_menu_item(category=self.category, status='pending_approval')
        sold_out = make_menu_item(category=self.category, is_available=False)
        hidden = make_menu_item(restaurant=self.restaurant, category=make_menu_category(
            restaurant=self.restaurant, is_active=False))

        with self.assertRaises(MenuItemNotFound):
            self._order([{'menu_item_id': 999999}])
        with self.assertRaises(InvalidInput) as ctx:
            self._order([{'menu_item_id': other.id}])
        self.assertIn('not on the menu', ctx.exception.message)
        for item in (pending, sold_out, hidden):
            with self.subTest(item=item.name):
                with self.assertRaises(MenuItemUnavailable):
                    self._order([{'menu_item_id': self.shiro.id}, {'menu_item_id': item.id}])
        self.assertFalse(Order.objects.exists())

    def test_bad_input(self):
        with self.assertRaises(RestaurantNotFound):
            self._order([{'menu_item_id': self.shiro.id}], restaurant_id=999999)
        with self.assertRaises(InvalidInput):
            self._order([])
        with self.assertRaises(InvalidInput):
            self._order([{'name': 'Shiro', 'unit_price': '80'}])
        with self.assertRaises(InvalidInput):
            self._order([{'menu_item_id': self.shiro.id, 'quantity': 0}])
        with self.assertRaises(InvalidInput):
            self._order([{'menu_item_id': self.shiro.id}], delivery_address='')
        with self.assertRaises(InvalidInput):
            self._order([{'menu_item_id': self.shiro.id}], payment_method='barter')
        with self.assertRaises(InvalidInput):
            self._order([{'menu_item_id': self.shiro.id}], delivery_latitude='9.02')
        with self.assertRaises(InvalidInput):
            self._order([{'menu_item_id': self.shiro.id}], delivery_latitude='91', delivery_longitude='38.76')
        self.assertFalse(Order.objects.exists())

    def test_oversized_orders_refused(self):
        with self.assertRaises(InvalidAmount):
            self._order([{'menu_item_id': self.shiro.id, 'quantity': 10 ** 9}])
        with self.assertRaises(InvalidAmount):
            self._order([{'menu_item_id': self.shiro.id}], tax='1e30')
        self.assertFalse(Order.objects.exists())


class TransitionOrderTests(TestCase):

    def setUp(self):
        self.admin = make_superadmin()
        self.restaurant = make_restaurant()

    def test_valid_transition_records_history(self):
        order = make_order(restaurant=self.restaurant)

        order = services.transition_order(order.id, 'confirmed', self.admin, note='Accepted')

        self.assertEqual(order.status, 'confirmed')
        self.assertIsNotNone(order.confirmed_at)
        change = OrderStatusChange.objects.get(order=order)
        self.assertEqual((change.from_status, change.to_status), ('pending', 'confirmed'))
        self.assertEqual(change.actor, self.admin)

    def test_invalid_transition_leaves_order(self):
        order = make_order(restaurant=self.restaurant)

        with self.assertRaises(InvalidTransition):
            services.transition_order(order.id, 'delivered', self.admin)
        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')
        self.assertFalse(OrderStatusChange.objects.exists())

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            services.transition_order(999999, 'confirmed', self.admin)

    def test_driver_required_for_pickup_statuses(self):
        order = make_order(restaurant=self.restaurant, status='ready_for_pickup')
        with self.assertRaises(InvalidState):
            services.transition_order(order.id, 'driver_assigned', self.admin)

    def test_cancel_stores_reason(self):
        order = make_order(restaurant=self.restaurant, status='confirmed')

        order = services.transition_order(order.id, 'cancelled', self.admin, note='Out of injera')

        self.assertEqual(order.cancellation_reason, 'Out of injera')
        self.assertIsNotNone(order.cancelled_at)
        self.assertEqual(order.credit_settlement_status, 'not_applicable')

    def test_terminal_order_cannot_change(self):
        order = make_order(restaurant=self.restaurant, status='delivered')
        with self.assertRaises(InvalidTransition):
            services.transition_order(order.id, 'cancelled', self.admin)

    def test_preparing_triggers_assignment(self):
        driver = make_driver(balance='500.00', latitude='9.011000', longitude='38.761000')
        order = make_order(restaurant=self.restaurant, status='confirmed')

        order = services.transition_order(order.id, 'preparing', self.admin)

        self.assertEqual(order.status, 'preparing')
        self.assertEqual(order.driver, driver)
        driver.refresh_from_db()
        self.assertFalse(driver.is_available)

    def test_failed_assignment_keeps_transition_and_schedules_retry(self):
        order = make_order(restaurant=self.restaurant, status='confirmed')

        with mock.patch('orders.services.schedule_assignment_retry') as retry:
            order = services.transition_order(order.id, 'preparing', self.admin)

        self.assertEqual(order.status, 'preparing')
        self.assertIsNone(order.driver)
        retry.assert_called_once_with(order.id)

    def test_assignment_error_is_not_raised(self):
        order = make_order(restaurant=self.restaurant, status='confirmed')

        with mock.patch('orders.services.assign_driver', side_effect=RuntimeError('db down')):
            order = services.transition_order(order.id, 'preparing', self.admin)
        self.assertEqual(order.status, 'preparing')

    @override_settings(ENABLE_CELERY=True, DRIVER_ASSIGNMENT_RETRY_DELAY=45)
    def test_retry_is_queued_with_delay(self):
        from delivery.tasks import assign_order_driver_async
        order = make_order(restaurant=self.restaurant, status='preparing')

        with mock.patch.object(assign_order_driver_async, 'apply_async') as apply_async:
            self.assertTrue(services.schedule_assignment_retry(order.id))
        apply_async.assert_called_once_with(args=(order.id,), kwargs={}, countdown=45)
        order.refresh_from_db()
        self.assertTrue(order.assignment_retry_pending)

    def test_retry_without_celery_falls_back_to_sweep(self):
        order = make_order(restaurant=self.restaurant, status='preparing')

        self.assertFalse(services.schedule_assignment_retry(order.id))
        order.refresh_from_db()
        self.assertFalse(order.assignment_retry_pending)

    @override_settings(ENABLE_CELERY=True)
    def test_one_retry_chain_per_order(self):
        from delivery.tasks import assign_order_driver_async
        order = make_order(restaurant=self.restaurant, status='confirmed')

        with mock.patch.object(assign_order_driver_async, 'apply_async') as apply_async:
            services.transition_order(order.id, 'preparing', self.admin)
            services.transition_order(order.id, 'ready_for_pickup', self.admin)

        self.assertEqual(apply_async.call_count, 1)

    @override_settings(ENABLE_CELERY=True)
    def test_no_retry_for_orders_awaiting_manual_assignment(self):
        from delivery.tasks import assign_order_driver_async
        order = make_order(restaurant=self.restaurant, status='preparing', needs_manual_assignment=True)

        with mock.patch.object(assign_order_driver_async, 'apply_async') as apply_async:
            self.assertFalse(services.schedule_assignment_retry(order.id))
        apply_async.assert_not_called()


class CashSettlementTests(TestCase):

    def setUp(self):
        self.admin = make_superadmin()

    def _picked_up(self, balance, total='120.00', payment_method='cash'):
        driver = make_driver(balance=balance, available=False)
        order = make_order(status='picked_up', driver=driver, total=total, payment_method=payment_method)
        return driver, order

    def test_delivery_debits_driver_and_releases(self):
        driver, order = self._picked_up('200.00')

        order = services.transition_order(order.id, 'delivered', self.admin)

        self.assertEqual(order.status, 'delivered')
        self.assertEqual(order.credit_settlement_status, 'settled')
        driver.refresh_from_db()
        self.assertEqual(driver.credit_balance, Decimal('80.00'))
        self.assertTrue(driver.is_available)
        self.assertEqual(driver.total_deliveries, 1)
        self.assertTrue(driver.credit_transactions.filter(order=order, kind='cod_settlement').exists())

    def test_insufficient_balance_flags_order(self):
        driver, order = self._picked_up('50.00')

        with mock.patch('orders.services.notify_credit_settlement_failed') as notify:
            order = services.transition_order(order.id, 'delivered', self.admin)

        self.assertEqual(order.status, 'delivered')
        self.assertEqual(order.credit_settlement_status, 'needs_reconciliation')
        self.assertIn('Insufficient credit balance', order.settlement_note)
        driver.refresh_from_db()
        self.assertEqual(driver.credit_balance, Decimal('50.00'))
        notify.assert_called_once()

    def test_online_order_not_debited(self):
        driver, order = self._picked_up('10.00', payment_method='online')

        order = services.transition_order(order.id, 'delivered', self.admin)

        driver.refresh_from_db()
        self.assertEqual(driver.credit_balance, Decimal('10.00'))
        self.assertEqual(order.credit_settlement_status, 'not_applicable')

    def test_cancel_releases_driver(self):
        driver = make_driver(available=False)
        order = make_order(status='driver_assigned', driver=driver)

        services.transition_order(order.id, 'cancelled', self.admin)

        driver.refresh_from_db()
        self.assertTrue(driver.is_available)
        self.assertEqual(driver.total_deliveries, 0)


class OrderVisibilityTests(TestCase):

    def test_scoped_by_role(self):
        restaurant = make_restaurant()
        staff = make_user('kitchen_staff', restaurant=restaurant)
        customer = make_user('customer')
        driver = make_driver(available=False)
        mine = make_order(restaurant=restaurant, customer=customer, driver=driver, status='driver_assigned')
        other = make_order()

        self.assertEqual(set(services.orders_visible_to(make_superadmin())), {mine, other})
        self.assertEqual(list(services.orders_visible_to(staff)), [mine])
        self.assertEqual(list(services.orders_visible_to(customer)), [mine])
        self.assertEqual(list(services.orders_visible_to(driver.user)), [mine])
