"""
Order lifecycle as an explicit transition table.

    pending -> confirmed -> preparing -> ready_for_pickup
        -> driver_assigned -> picked_up -> delivered

cancelled is reachable from every status before delivered. delivered and
cancelled are terminal.
"""
from django.core.exceptions import ImproperlyConfigured

from core.exceptions import InvalidInput, InvalidTransition
from .models import Order

STATUSES = tuple(value for value, _label in Order.STATUS_CHOICES)

TERMINAL_STATUSES = frozenset({'delivered', 'cancelled'})

# Entering one of these without a driver triggers the assignment policy
ASSIGNMENT_TRIGGER_STATUSES = frozenset({'preparing', 'ready_for_pickup'})

# Statuses that require order.driver to be set
DRIVER_REQUIRED_STATUSES = frozenset({'driver_assigned', 'picked_up'})

# An order holds its driver in any of these
ACTIVE_STATUSES = frozenset({
    'pending', 'confirmed', 'preparing', 'ready_for_pickup', 'driver_assigned', 'picked_up',
})

TRANSITIONS = {
    'pending': frozenset({'confirmed', 'cancelled'}),
    'confirmed': frozenset({'preparing', 'cancelled'}),
    'preparing': frozenset({'ready_for_pickup', 'cancelled'}),
    'ready_for_pickup': frozenset({'driver_assigned', 'cancelled'}),
    'driver_assigned': frozenset({'picked_up', 'cancelled'}),
    'picked_up': frozenset({'delivered', 'cancelled'}),
    'delivered': frozenset(),
    'cancelled': frozenset(),
}

# Names older dashboard and driver clients still send
STATUS_ALIASES = {
    'ready': 'ready_for_pickup',
    'assigned': 'driver_assigned',
    'in_preparation': 'preparing',
    'out_for_delivery': 'picked_up',
}


def _validate_table():
    if set(TRANSITIONS) != set(STATUSES):
        raise ImproperlyConfigured('Order transition table must list every order status')
    for source, targets in TRANSITIONS.items():
        unknown = targets - set(STATUSES)
        if unknown:
            raise ImproperlyConfigured(f"Unknown target status {sorted(unknown)} from {source}")
        if source in TERMINAL_STATUSES and targets:
            raise ImproperlyConfigured(f"Terminal status {source} cannot have transitions")
        if source not in TERMINAL_STATUSES and 'cancelled' not in targets:
            raise ImproperlyConfigured(f"Status {source} must allow cancellation")
    for alias, status in STATUS_ALIASES.items():
        if status not in STATUSES:
            raise ImproperlyConfigured(f"Alias {alias} points to unknown status {status}")


_validate_table()


def normalize_status(status):
    """Map a client-supplied status (or alias) to a canonical status."""
    value = (status or '').strip().lower()
    value = STATUS_ALIASES.get(value, value)
    if value not in STATUSES:
        raise InvalidInput(f"Unknown order status: {status}")
    return value


def can_transition(current, target):
    return target in TRANSITIONS.get(current, frozenset())


def allowed_targets(current):
    return TRANSITIONS.get(current, frozenset())


def check_transition(current, target):
    """Raise InvalidTransition unless target directly follows current."""
    if not can_transition(current, target):
        if current in TERMINAL_STATUSES:
            raise InvalidTransition(f"Order is already {current} and cannot change status")
        raise InvalidTransition(f"Cannot change order status from {current} to {target}")
