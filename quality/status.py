"""
QC status derivation
Pure functions over the submitted inspection lines; nothing here touches the database
"""
from utils.enums import QCLineStatusChoices, QCStatusChoices
from utils.quantities import ZERO, qty_tolerance, shortage_overage, to_decimal


def _value(item, field):
    if isinstance(item, dict):
        return item.get(field)
    return getattr(item, field, None)


def derive_line_status(ordered_qty, accepted_qty):
    """
    Returns (line_status, shortage_qty, overage_qty) for one line.
    A missing accepted quantity counts as zero.
    """
    ordered = to_decimal(ordered_qty)
    accepted = to_decimal(accepted_qty)
    shortage, overage = shortage_overage(ordered, accepted)

    tolerance = qty_tolerance()
    if shortage > tolerance:
        return QCLineStatusChoices.SHORTAGE, shortage, ZERO
    if overage > tolerance:
        return QCLineStatusChoices.OVERAGE, ZERO, overage
    return QCLineStatusChoices.AVAILABLE, ZERO, ZERO


def derive_inspection_status(items):
    """
    IN_PROGRESS when any line's accepted quantity differs from the ordered
    quantity by more than the tolerance, PASSED otherwise.
    """
    tolerance = qty_tolerance()
    for item in items:
        discrepancy = abs(to_decimal(_value(item, 'ordered_qty')) - to_decimal(_value(item, 'accepted_qty')))
        if discrepancy > tolerance:
            return QCStatusChoices.IN_PROGRESS
    return QCStatusChoices.PASSED


def derive_lines(items):
    """Per-line status plus the aggregate, as recomputed on every save"""
    lines = []
    for item in items:
        line_status, shortage, overage = derive_line_status(
            _value(item, 'ordered_qty'), _value(item, 'accepted_qty')
        )
        lines.append({
            'line_status': line_status,
            'shortage_qty': shortage,
            'overage_qty': overage,
        })
    return lines, derive_inspection_status(items)
