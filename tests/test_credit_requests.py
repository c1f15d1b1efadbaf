from decimal import Decimal

from django.test import TestCase

from core.exceptions import (
    DriverNotFound, InvalidAmount, InvalidInput,
    RequestAlreadyPending, RequestNotFound, RequestNotPending,
)
from credit import services
from credit.models import CreditRequest, CreditTransaction
from delivery.models import Driver

from .factories import make_driver, make_superadmin, screenshot


class SubmitCreditRequestTests(TestCase):

    def setUp(self):
        self.driver = make_driver(balance='10.00')

    def test_submit_creates_pending_request(self):
        credit_request = services.submit_credit_request(self.driver.id, '150', screenshot())

        self.assertEqual(credit_request.status, 'pending')
        self.assertEqual(credit_request.amount, Decimal('150.00'))
        self.assertTrue(credit_request.proof_image.name.startswith('credit_requests/'))
        # Submission does not touch the balance
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.credit_balance, Decimal('10.00'))

    def test_invalid_amount_is_checked_first(self):
        with self.assertRaises(InvalidAmount):
            services.submit_credit_request(999999, '0', None)

    def test_screenshot_required(self):
        with self.assertRaises(InvalidInput) as ctx:
            services.submit_credit_request(self.driver.id, '100', None)
        self.assertEqual(ctx.exception.message, 'Screenshot is required for credit request')

    def test_unknown_driver(self):
        with self.assertRaises(DriverNotFound):
            services.submit_credit_request(999999, '100', screenshot())

    def test_oversized_amounts_refused(self):
        for amount in ('1e30', '99999999999'):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidAmount):
                    services.submit_credit_request(self.driver.id, amount, screenshot())
        self.assertFalse(CreditRequest.objects.exists())

    def test_second_pending_request_refused(self):
        services.submit_credit_request(self.driver.id, '100', screenshot())

        with self.assertRaises(RequestAlreadyPending):
            services.submit_credit_request(self.driver.id, '50', screenshot())
        self.assertEqual(CreditRequest.objects.filter(driver=self.driver).count(), 1)

    def test_new_request_allowed_after_decision(self):
        admin = make_superadmin()
        first = services.submit_credit_request(self.driver.id, '100', screenshot())
        services.reject_credit_request(first.id, admin, 'Blurry screenshot')

        second = services.submit_credit_request(self.driver.id, '100', screenshot())
        self.assertEqual(second.status, 'pending')


class DecideCreditRequestTests(TestCase):

    def setUp(self):
        self.admin = make_superadmin()
        self.driver = make_driver(balance='10.00')
        self.credit_request = services.submit_credit_request(self.driver.id, '90', screenshot())

    def test_approve_credits_driver_once(self):
        decided = services.approve_credit_request(self.credit_request.id, self.admin)

        self.assertEqual(decided.status, 'approved')
        self.assertEqual(decided.decided_by, self.admin)
        self.assertIsNotNone(decided.decided_at)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.credit_balance, Decimal('100.00'))

        entry = CreditTransaction.objects.get(credit_request=self.credit_request)
        self.assertEqual(entry.kind, 'top_up')
        self.assertEqual(entry.amount, Decimal('90.00'))

    def test_approve_twice_refused(self):
        services.approve_credit_request(self.credit_request.id, self.admin)

        with self.assertRaises(RequestNotPending):
            services.approve_credit_request(self.credit_request.id, self.admin)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.credit_balance, Decimal('100.00'))
        self.assertEqual(CreditTransaction.objects.count(), 1)

    def test_reject_requires_reason(self):
        with self.assertRaises(InvalidInput):
            services.reject_credit_request(self.credit_request.id, self.admin, '   ')
        self.credit_request.refresh_from_db()
        self.assertEqual(self.credit_request.status, 'pending')

    def test_reject_leaves_balance(self):
        decided = services.reject_credit_request(self.credit_request.id, self.admin, 'Amount mismatch')

        self.assertEqual(decided.status, 'rejected')
        self.assertEqual(decided.rejection_reason, 'Amount mismatch')
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.credit_balance, Decimal('10.00'))

    def test_approve_after_reject_refused(self):
        services.reject_credit_request(self.credit_request.id, self.admin, 'Duplicate')
        with self.assertRaises(RequestNotPending):
            services.approve_credit_request(self.credit_request.id, self.admin)

    def test_approval_that_would_overflow_balance_leaves_request_pending(self):
        Driver.objects.filter(pk=self.driver.pk).update(credit_balance=Decimal('9999999950.00'))

        with self.assertRaises(InvalidAmount):
            services.approve_credit_request(self.credit_request.id, self.admin)

        self.credit_request.refresh_from_db()
        self.assertEqual(self.credit_request.status, 'pending')
        self.assertIsNone(self.credit_request.decided_by)
        self.assertFalse(CreditTransaction.objects.exists())

    def test_unknown_request(self):
        with self.assertRaises(RequestNotFound):
            services.approve_credit_request(999999, self.admin)
        with self.assertRaises(RequestNotFound):
            services.reject_credit_request(999999, self.admin, 'reason')

    def test_status_view(self):
        status = services.get_credit_request_status(self.driver.id)
        self.assertEqual(status['pending_request'], self.credit_request)
        self.assertIsNone(status['last_decision'])
        self.assertEqual(status['balance'], Decimal('10.00'))
        self.assertEqual(status['currency'], 'ETB')

        services.approve_credit_request(self.credit_request.id, self.admin)
        status = services.get_credit_request_status(self.driver.id)
        self.assertIsNone(status['pending_request'])
        self.assertEqual(status['last_decision'].status, 'approved')
        self.assertEqual(status['balance'], Decimal('100.00'))

    def test_pending_queue_is_oldest_first(self):
        other = make_driver()
        later = services.submit_credit_request(other.id, '20', screenshot())

        queue = list(services.list_pending_credit_requests())
        self.assertEqual(queue, [self.credit_request, later])
