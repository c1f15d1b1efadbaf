from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.exceptions import InvalidAmount

CENTS = Decimal('0.01')

# Ledger columns: DecimalField(max_digits=12, decimal_places=2)
MAX_DIGITS = 12


def max_amount(max_digits=MAX_DIGITS):
    """Largest value a money column with max_digits (2 decimals) can hold."""
    return Decimal(10) ** (max_digits - 2) - CENTS


def parse_amount(value, field='amount', allow_zero=False, max_digits=MAX_DIGITS):
    """
    Parse a money value coming from a form, JSON body or caller.

    Returns a Decimal rounded to cents. Raises InvalidAmount when the value
    is missing, not a number, not positive (zero allowed on request), or
    too large for a column of max_digits.
    """
    label = field.replace('_', ' ')
    if value is None or value == '':
        raise InvalidAmount(f"{label.capitalize()} is required")

    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidAmount(f"Invalid {label}: {value}")
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Invalid {label}: {value}")

    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(f"{label.capitalize()} must be greater than 0")

    limit = max_amount(max_digits)
    if amount > limit:
        raise InvalidAmount(f"{label.capitalize()} cannot exceed {limit:,}")
    return amount
