"""
Credit request queue: driver top-up submissions and superadmin decisions.
"""
import logging
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import (
    DriverNotFound, InvalidInput, RequestAlreadyPending, RequestNotFound, RequestNotPending,
)
from core.utils.money import parse_amount
from core.utils.websocket_notifications import (
    notify_credit_request_submitted, notify_credit_request_decided,
)
from delivery.models import Driver
from . import ledger
from .models import CreditRequest

logger = logging.getLogger(__name__)


def submit_credit_request(driver_id, amount, proof_image):
    """
    Create a pending top-up request for the driver.

    The one-pending-request rule is enforced by a partial unique index, so
    two concurrent submissions cannot both succeed.
    """
    amount = parse_amount(amount)
    if not proof_image:
        raise InvalidInput('Screenshot is required for credit request')

    if not Driver.objects.filter(pk=driver_id).exists():
        raise DriverNotFound(f"Driver {driver_id} not found")

    try:
        with transaction.atomic():
            credit_request = CreditRequest.objects.create(
                driver_id=driver_id,
                amount=amount,
                proof_image=proof_image,
            )
    except IntegrityError:
        raise RequestAlreadyPending()

    credit_request = CreditRequest.objects.select_related('driver').get(pk=credit_request.pk)
    logger.info(f"Credit request {credit_request.id} submitted by driver {driver_id} for {amount} {ledger.currency()}")

    notify_credit_request_submitted(credit_request)
    return credit_request


def _close_pending(request_id, admin, new_status, rejection_reason=''):
    """
    Move a request out of pending. Only one caller can win this update.
    """
    updated = CreditRequest.objects.filter(pk=request_id, status='pending').update(
        status=new_status,
        rejection_reason=rejection_reason,
        decided_by=admin,
        decided_at=timezone.now(),
        updated_at=timezone.now(),
    )
    if not updated:
        if not CreditRequest.objects.filter(pk=request_id).exists():
            raise RequestNotFound(f"Credit request {request_id} not found")
        raise RequestNotPending()
    return CreditRequest.objects.select_related('driver').get(pk=request_id)


def approve_credit_request(request_id, admin):
    """
    Approve a pending request and credit the driver in the same transaction.
    Returns the closed request.
    """
    with transaction.atomic():
        credit_request = _close_pending(request_id, admin, 'approved')
        entry = ledger.credit(
            credit_request.driver_id,
            credit_request.amount,
            kind='top_up',
            credit_request=credit_request,
            actor=admin,
            note=f"Credit request {credit_request.id}",
        )

    logger.info(f"✓ Credit request {request_id} approved by {admin}. New balance: {entry.balance_after}")
    credit_request.driver.refresh_from_db()
    notify_credit_request_decided(credit_request, entry.balance_after)
    return credit_request


def reject_credit_request(request_id, admin, reason):
    reason = (reason or '').strip()
    if not reason:
        raise InvalidInput('Rejection reason is required')

    credit_request = _close_pending(request_id, admin, 'rejected', rejection_reason=reason)

    logger.info(f"Credit request {request_id} rejected by {admin}: {reason}")
    notify_credit_request_decided(credit_request, credit_request.driver.credit_balance)
    return credit_request


def get_credit_request_status(driver_id):
    """
    Composite view polled by the driver app: the open request (if any),
    the current balance and the latest decided request.
    """
    balance = ledger.get_balance(driver_id)
    requests = CreditRequest.objects.filter(driver_id=driver_id)
    return {
        'pending_request': requests.filter(status='pending').first(),
        'last_decision': requests.exclude(status='pending').order_by('-decided_at', '-id').first(),
        'balance': balance,
        'currency': ledger.currency(),
    }


def list_pending_credit_requests():
    return CreditRequest.objects.filter(status='pending').select_related('driver').order_by('created_at', 'id')
