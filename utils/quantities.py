"""
Quantity helpers shared by GRN, QC, allocation and stock code
"""
from decimal import Decimal, InvalidOperation

from django.conf import settings

ZERO = Decimal('0')


def qty_tolerance():
    return Decimal(str(settings.ERP_SETTINGS.get('QTY_TOLERANCE', '0.001')))


def to_decimal(value, default=ZERO):
    """Coerce request/DB values to Decimal; None and blanks become `default`"""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def quantities_equal(first, second):
    return abs(to_decimal(first) - to_decimal(second)) <= qty_tolerance()


def shortage_overage(ordered, accepted):
    """
    Returns (shortage, overage) for one line.
    shortage = max(0, ordered - accepted), overage = max(0, accepted - ordered)
    """
    ordered = to_decimal(ordered)
    accepted = to_decimal(accepted)
    return max(ZERO, ordered - accepted), max(ZERO, accepted - ordered)
