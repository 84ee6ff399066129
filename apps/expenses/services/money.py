"""
Money helpers shared by the split, balance and settlement services.

Amounts are ``Decimal`` values quantized to cents. Rounding is always
half away from zero so totals are reproducible.
"""
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal('0.01')
ZERO = Decimal('0.00')
HUNDRED = Decimal('100')

# Balances and transfers smaller than this are treated as zero.
EPSILON = CENT


def to_decimal(value):
    """Coerce *value* (Decimal, str, int or float) to ``Decimal``."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round2(value):
    """Round *value* to two decimal places, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def snap_to_zero(value):
    """Return ``ZERO`` for amounts within ``EPSILON`` of zero."""
    value = round2(value)
    if abs(value) < EPSILON:
        return ZERO
    return value
