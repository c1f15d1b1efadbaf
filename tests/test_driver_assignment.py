from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone

from core.exceptions import InvalidState, NoEligibleDriver, OrderNotFound
from delivery import assignment
from delivery.models import Driver

from .factories import make_driver, make_order, make_restaurant

# Restaurant sits at 9.010000, 38.760000
NEAR = {'latitude': '9.012000', 'longitude': '38.762000'}
FARTHER = {'latitude': '9.030000', 'longitude': '38.780000'}
OUT_OF_RANGE = {'latitude': '9.300000', 'longitude': '39.100000'}


class DistanceTests(TestCase):

    def test_haversine(self):
        self.assertAlmostEqual(assignment.calculate_distance(0, 0, 0, 1), 111.19, places=1)
        self.assertEqual(assignment.calculate_distance(9.01, 38.76, 9.01, 38.76), 0)


class EligibilityTests(TestCase):

    def setUp(self):
        self.restaurant = make_restaurant()
        self.order = make_order(restaurant=self.restaurant, status='preparing', total='100.00')

    def test_only_approved_unblocked_online_available_drivers(self):
        eligible = make_driver(balance='100.00', **NEAR)
        make_driver(approved=False, balance='500.00', **NEAR)
        make_driver(online=False, balance='500.00', **NEAR)
        make_driver(available=False, balance='500.00', **NEAR)
        make_driver(is_blocked=True, balance='500.00', **NEAR)

        ranked = assignment.find_eligible_drivers(self.order)
        self.assertEqual([c['driver'] for c in ranked], [eligible])

    def test_cash_orders_need_covering_balance(self):
        make_driver(balance='99.99', **NEAR)
        self.assertEqual(assignment.find_eligible_drivers(self.order), [])

        online_order = make_order(restaurant=self.restaurant, status='preparing', payment_method='online')
        self.assertEqual(len(assignment.find_eligible_drivers(online_order)), 1)

    def test_driver_with_active_order_excluded(self):
        busy = make_driver(balance='500.00', **NEAR)
        make_order(restaurant=self.restaurant, status='picked_up', driver=busy)

        self.assertEqual(assignment.find_eligible_drivers(self.order), [])

    def test_ranking(self):
        now = timezone.now()
        far = make_driver(balance='500.00', **FARTHER)
        near = make_driver(balance='500.00', **NEAR)
        unknown_recent = make_driver(balance='500.00', last_online=now)
        unknown_longest = make_driver(balance='500.00', last_online=now - timedelta(hours=2))
        make_driver(balance='500.00', **OUT_OF_RANGE)

        ranked = assignment.find_eligible_drivers(self.order)

        self.assertEqual(
            [c['driver'] for c in ranked],
            [near, far, unknown_longest, unknown_recent]
        )
        self.assertIsNone(ranked[-1]['distance'])
        self.assertLess(ranked[0]['distance'], ranked[1]['distance'])

    def test_radius_is_configurable(self):
        make_driver(balance='500.00', **OUT_OF_RANGE)
        self.assertEqual(len(assignment.find_eligible_drivers(self.order, radius_km=100)), 1)

    def test_restaurant_without_location_ranks_by_online_time(self):
        restaurant = make_restaurant(latitude=None, longitude=None)
        order = make_order(restaurant=restaurant, status='preparing', payment_method='online')
        first = make_driver(last_online=timezone.now() - timedelta(minutes=30), **OUT_OF_RANGE)
        second = make_driver(last_online=timezone.now(), **NEAR)

        ranked = assignment.find_eligible_drivers(order)
        self.assertEqual([c['driver'] for c in ranked], [first, second])


class AssignDriverTests(TestCase):

    def setUp(self):
        self.restaurant = make_restaurant()

    def test_assigns_nearest_and_marks_busy(self):
        far = make_driver(balance='500.00', **FARTHER)
        near = make_driver(balance='500.00', **NEAR)
        order = make_order(restaurant=self.restaurant, status='ready_for_pickup')

        driver = assignment.assign_driver(order.id)

        self.assertEqual(driver, near)
        order.refresh_from_db()
        self.assertEqual(order.driver, near)
        # Assignment binds the driver; the status change is the driver's own step
        self.assertEqual(order.status, 'ready_for_pickup')
        self.assertIsNotNone(order.assigned_at)
        near.refresh_from_db()
        far.refresh_from_db()
        self.assertFalse(near.is_available)
        self.assertTrue(far.is_available)

    def test_one_driver_two_orders(self):
        driver = make_driver(balance='500.00', **NEAR)
        first = make_order(restaurant=self.restaurant, status='preparing')
        second = make_order(restaurant=self.restaurant, status='preparing')

        self.assertEqual(assignment.assign_driver(first.id), driver)
        self.assertIsNone(assignment.assign_driver(second.id))
        second.refresh_from_db()
        self.assertIsNone(second.driver)

    def test_already_assigned_order_keeps_driver(self):
        current = make_driver(balance='500.00', available=False)
        make_driver(balance='500.00', **NEAR)
        order = make_order(restaurant=self.restaurant, status='preparing', driver=current)

        self.assertEqual(assignment.assign_driver(order.id), current)

    def test_not_awaiting_driver(self):
        make_driver(balance='500.00', **NEAR)
        order = make_order(restaurant=self.restaurant, status='confirmed')

        self.assertIsNone(assignment.assign_driver(order.id))
        with self.assertRaises(InvalidState):
            assignment.assign_driver_or_raise(order.id)

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            assignment.assign_driver(999999)

    def test_no_eligible_driver_raises_for_admin(self):
        order = make_order(restaurant=self.restaurant, status='preparing')
        with self.assertRaises(NoEligibleDriver):
            assignment.assign_driver_or_raise(order.id)

    def test_claimed_driver_is_skipped(self):
        near = make_driver(balance='500.00', **NEAR)
        far = make_driver(balance='500.00', **FARTHER)
        order = make_order(restaurant=self.restaurant, status='preparing')

        ranked = assignment.find_eligible_drivers(order)
        # Someone else takes the nearest driver between ranking and claiming
        Driver.objects.filter(pk=near.pk).update(is_available=False)
        self.assertEqual(assignment._claim_and_bind(order, ranked[0]['driver']), 'driver_taken')
        self.assertEqual(assignment._claim_and_bind(order, ranked[1]['driver']), 'assigned')

        order.refresh_from_db()
        self.assertEqual(order.driver, far)

    def test_lost_bind_rolls_back_claim(self):
        driver = make_driver(balance='500.00', **NEAR)
        other = make_driver(balance='500.00', available=False)
        order = make_order(restaurant=self.restaurant, status='preparing')
        stale = type(order).objects.get(pk=order.pk)
        type(order).objects.filter(pk=order.pk).update(driver=other)

        self.assertEqual(assignment._claim_and_bind(stale, driver), 'order_taken')
        driver.refresh_from_db()
        self.assertTrue(driver.is_available)


class ReleaseDriverTests(TestCase):

    def test_release_after_delivery(self):
        driver = make_driver(available=False)
        self.assertTrue(assignment.release_driver(driver.id, completed_delivery=True))

        driver.refresh_from_db()
        self.assertTrue(driver.is_available)
        self.assertEqual(driver.total_deliveries, 1)

    def test_offline_driver_stays_unavailable(self):
        driver = make_driver(online=False, available=False)
        self.assertFalse(assignment.release_driver(driver.id))

        driver.refresh_from_db()
        self.assertFalse(driver.is_available)


class SweepTests(TestCase):

    def test_sweep_assigns_waiting_orders(self):
        restaurant = make_restaurant()
        make_driver(balance='500.00', **NEAR)
        waiting = make_order(restaurant=restaurant, status='ready_for_pickup')
        second = make_order(restaurant=restaurant, status='preparing')
        make_order(restaurant=restaurant, status='confirmed')

        result = assignment.sweep_unassigned_orders()

        self.assertEqual(result, {'checked': 2, 'assigned': 1, 'unassigned': 1})
        waiting.refresh_from_db()
        second.refresh_from_db()
        # Oldest order first
        self.assertIsNotNone(waiting.driver)
        self.assertIsNone(second.driver)

    def test_dry_run_assigns_nothing(self):
        make_driver(balance='500.00', **NEAR)
        order = make_order(status='preparing')

        result = assignment.sweep_unassigned_orders(dry_run=True)

        self.assertEqual(result, {'checked': 1, 'assigned': 0, 'unassigned': 1})
        order.refresh_from_db()
        self.assertIsNone(order.driver)

    @override_settings(DRIVER_SEARCH_RADIUS_KM=1)
    def test_radius_setting(self):
        make_driver(balance='500.00', **FARTHER)
        order = make_order(status='preparing')
        self.assertEqual(assignment.find_eligible_drivers(order), [])
