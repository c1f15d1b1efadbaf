from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from delivery.tasks import (
    assign_order_driver_async, mark_inactive_drivers_offline_task, sweep_unassigned_orders_task,
)

from .factories import make_driver, make_order


class AssignmentTaskTests(TestCase):

    def test_assigns_on_first_attempt(self):
        driver = make_driver(balance='500.00')
        order = make_order(status='preparing')

        result = assign_order_driver_async.apply(args=[order.id]).get()

        self.assertEqual(result, {'success': True, 'driver_id': driver.id})

    def test_gives_up_on_last_attempt(self):
        order = make_order(status='ready_for_pickup')
        retries = assign_order_driver_async.max_retries

        result = assign_order_driver_async.apply(args=[order.id], retries=retries).get()

        self.assertFalse(result['success'])
        order.refresh_from_db()
        self.assertTrue(order.needs_manual_assignment)

    def test_cancelled_order_is_not_retried(self):
        order = make_order(status='cancelled')

        result = assign_order_driver_async.apply(args=[order.id]).get()

        self.assertFalse(result['retry'])

    def test_finished_chain_frees_the_order(self):
        make_driver(balance='500.00')
        assigned = make_order(status='preparing', assignment_retry_pending=True)
        given_up = make_order(status='ready_for_pickup', payment_method='cash', total='9000.00',
                              assignment_retry_pending=True)

        assign_order_driver_async.apply(args=[assigned.id]).get()
        assign_order_driver_async.apply(args=[given_up.id], retries=assign_order_driver_async.max_retries).get()

        assigned.refresh_from_db()
        given_up.refresh_from_db()
        self.assertFalse(assigned.assignment_retry_pending)
        self.assertFalse(given_up.assignment_retry_pending)
        self.assertTrue(given_up.needs_manual_assignment)


class PeriodicTaskTests(TestCase):

    def test_sweep_task(self):
        make_driver(balance='500.00')
        make_order(status='preparing')

        result = sweep_unassigned_orders_task.apply().get()

        self.assertEqual(result['assigned'], 1)

    def test_inactive_drivers_task(self):
        make_driver(last_online=timezone.now() - timedelta(hours=1))

        result = mark_inactive_drivers_offline_task.apply(kwargs={'threshold_minutes': 10}).get()

        self.assertEqual(result, {'success': True, 'count': 1})


class ManagementCommandTests(TestCase):

    def test_sweep_command(self):
        make_driver(balance='500.00')
        order = make_order(status='ready_for_pickup')
        out = StringIO()

        call_command('sweep_unassigned_orders', '--dry-run', stdout=out)
        self.assertIn('1 orders waiting for a driver', out.getvalue())
        order.refresh_from_db()
        self.assertIsNone(order.driver)

        out = StringIO()
        call_command('sweep_unassigned_orders', stdout=out)
        self.assertIn('Assigned drivers to 1 orders', out.getvalue())

    def test_mark_inactive_command(self):
        stale = make_driver(last_online=timezone.now() - timedelta(minutes=45))
        out = StringIO()

        call_command('mark_inactive_drivers', '--threshold-minutes', '30', stdout=out)

        self.assertIn('Marked 1 drivers offline', out.getvalue())
        stale.refresh_from_db()
        self.assertFalse(stale.is_online)

    def test_mark_inactive_command_nothing_to_do(self):
        out = StringIO()
        call_command('mark_inactive_drivers', stdout=out)
        self.assertIn('No inactive drivers found', out.getvalue())
