"""
Workflow errors shared by the credit, order and driver apps.

Every error carries a human-readable message that can be shown as-is on
the admin dashboards, a stable machine code, and the HTTP status the API
answers with.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Base class for errors raised by the marketplace workflows."""
    status_code = 400
    code = 'workflow_error'
    default_message = 'The operation could not be completed.'

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


# Entity id doesn't resolve

class NotFound(WorkflowError):
    status_code = 404
    code = 'not_found'
    default_message = 'The requested record was not found.'


class OrderNotFound(NotFound):
    code = 'order_not_found'
    default_message = 'Order not found.'


class DriverNotFound(NotFound):
    code = 'driver_not_found'
    default_message = 'Driver not found.'


class RestaurantNotFound(NotFound):
    code = 'restaurant_not_found'
    default_message = 'Restaurant not found.'


class RequestNotFound(NotFound):
    code = 'request_not_found'
    default_message = 'Credit request not found.'


class OfferNotFound(NotFound):
    code = 'offer_not_found'
    default_message = 'Special offer not found.'


class MenuCategoryNotFound(NotFound):
    code = 'menu_category_not_found'
    default_message = 'Menu category not found.'


class MenuItemNotFound(NotFound):
    code = 'menu_item_not_found'
    default_message = 'Menu item not found.'


# Operation not valid for the current status or flags

class InvalidState(WorkflowError):
    status_code = 409
    code = 'invalid_state'
    default_message = 'This action is not allowed in the current state.'


class InvalidTransition(InvalidState):
    code = 'invalid_transition'
    default_message = 'This order status change is not allowed.'


class RequestNotPending(InvalidState):
    code = 'request_not_pending'
    default_message = 'This credit request has already been decided.'


class RequestAlreadyPending(InvalidState):
    code = 'request_already_pending'
    default_message = 'You already have a pending credit request. Please wait for it to be reviewed.'


class MenuItemUnavailable(InvalidState):
    code = 'menu_item_unavailable'
    default_message = 'This menu item cannot be ordered right now.'


# Bad caller input

class InvalidInput(WorkflowError):
    status_code = 400
    code = 'invalid_input'
    default_message = 'The submitted data is invalid.'


class InvalidAmount(InvalidInput):
    code = 'invalid_amount'
    default_message = 'Amount must be greater than zero.'


class Forbidden(WorkflowError):
    status_code = 403
    code = 'forbidden'
    default_message = 'You do not have permission to perform this action.'


# Financial / assignment outcomes

class InsufficientBalance(WorkflowError):
    status_code = 409
    code = 'insufficient_balance'
    default_message = 'Driver credit balance is too low for this deduction.'


class NoEligibleDriver(WorkflowError):
    status_code = 409
    code = 'no_eligible_driver'
    default_message = 'No eligible driver is available for this order right now.'


def api_exception_handler(exc, context):
    """
    DRF exception handler that renders workflow errors as
    {'error': message, 'code': code} and defers everything else to DRF.
    """
    if isinstance(exc, WorkflowError):
        request = context.get('request')
        path = request.path if request is not None else '-'
        logger.info(f"{exc.__class__.__name__} on {path}: {exc.message}")
        return Response(
            {'error': exc.message, 'code': exc.code},
            status=exc.status_code
        )
    return exception_handler(exc, context)
