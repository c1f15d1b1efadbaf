"""
Driver credit ledger.

All balance changes go through credit() and debit(). Both are single
conditional UPDATE statements, so concurrent calls never lose an update
and a debit can never take a balance below zero.
"""
import logging
from django.conf import settings
from django.db import transaction
from django.db.models import F

from core.exceptions import DriverNotFound, InsufficientBalance, InvalidAmount, InvalidInput
from core.utils.money import max_amount, parse_amount
from delivery.models import Driver
from .models import CreditTransaction

logger = logging.getLogger(__name__)


def currency():
    return getattr(settings, 'CREDIT_CURRENCY', 'ETB')


def get_balance(driver_id):
    """Current balance of the driver. Read only."""
    balance = Driver.objects.filter(pk=driver_id).values_list('credit_balance', flat=True).first()
    if balance is None:
        raise DriverNotFound(f"Driver {driver_id} not found")
    return balance


def _record(driver_id, kind, signed_amount, credit_request=None, order=None, actor=None, note=''):
    balance_after = Driver.objects.values_list('credit_balance', flat=True).get(pk=driver_id)
    return CreditTransaction.objects.create(
        driver_id=driver_id,
        kind=kind,
        amount=signed_amount,
        balance_after=balance_after,
        credit_request=credit_request,
        order=order,
        actor=actor,
        note=note,
    )


def credit(driver_id, amount, kind='manual_credit', credit_request=None, actor=None, note=''):
    """
    Increase the driver's balance by amount (> 0).

    Callers tie each application to one source: a top-up passes its
    CreditRequest, which can only be linked to a single transaction.
    Returns the recorded CreditTransaction.
    """
    amount = parse_amount(amount)

    with transaction.atomic():
        updated = Driver.objects.filter(pk=driver_id, credit_balance__lte=max_amount() - amount).update(
            credit_balance=F('credit_balance') + amount
        )
        if not updated:
            balance = get_balance(driver_id)
            raise InvalidAmount(
                f"Crediting {amount} {currency()} would take the balance of {balance} "
                f"{currency()} past the maximum of {max_amount():,}"
            )

        entry = _record(driver_id, kind, amount, credit_request=credit_request, actor=actor, note=note)

    logger.info(f"Credited {amount} {currency()} to driver {driver_id} ({kind}). Balance: {entry.balance_after}")
    return entry


def debit(driver_id, amount, kind='cod_settlement', order=None, actor=None, note=''):
    """
    Decrease the driver's balance by amount (> 0).

    Raises InsufficientBalance, leaving the balance untouched, when the
    result would be negative.
    """
    amount = parse_amount(amount)

    with transaction.atomic():
        updated = Driver.objects.filter(pk=driver_id, credit_balance__gte=amount).update(
            credit_balance=F('credit_balance') - amount
        )
        if not updated:
            balance = get_balance(driver_id)
            raise InsufficientBalance(
                f"Insufficient credit balance: {balance} {currency()} available, "
                f"{amount} {currency()} required",
                driver_id=driver_id,
                balance=balance,
                amount=amount,
            )

        entry = _record(driver_id, kind, -amount, order=order, actor=actor, note=note)

    logger.info(f"Debited {amount} {currency()} from driver {driver_id} ({kind}). Balance: {entry.balance_after}")
    return entry


def adjust_balance(driver_id, operation, amount, actor, note=''):
    """
    Manual superadmin adjustment. operation is 'add' or 'deduct'.
    """
    if operation == 'add':
        return credit(driver_id, amount, kind='manual_credit', actor=actor, note=note)
    if operation == 'deduct':
        return debit(driver_id, amount, kind='manual_debit', actor=actor, note=note)
    raise InvalidInput(f"Invalid operation: {operation}. Use 'add' or 'deduct'")


def list_transactions(driver_id, limit=None):
    if not Driver.objects.filter(pk=driver_id).exists():
        raise DriverNotFound(f"Driver {driver_id} not found")
    entries = CreditTransaction.objects.filter(driver_id=driver_id).select_related('actor')
    if limit:
        entries = entries[:limit]
    return entries
