"""
Quotation request grouping

Items sent to a client in one go are stored as separate rows. On read they are
grouped back together by client and a fixed creation-time window.
"""
from collections import OrderedDict
from decimal import Decimal

from django.conf import settings

from utils.enums import QuotationRequestStatusChoices as Status

APPROVED_STATUSES = (Status.APPROVED, Status.COMPLETED, Status.PARTIAL)


def window_seconds():
    return int(settings.ERP_SETTINGS.get('QUOTATION_GROUP_WINDOW_SECONDS', 10))


def bucket_key(client_id, created_at, window=None):
    """(client_id, floor(epoch_ms / window_ms))"""
    window_ms = (window or window_seconds()) * 1000
    epoch_ms = int(created_at.timestamp() * 1000)
    return client_id, epoch_ms // window_ms


def group_total(rows):
    return sum(
        (row.total_amount for row in rows if row.status != Status.REJECTED),
        Decimal('0')
    )


def group_status(rows):
    active = [row.status for row in rows if row.status != Status.REJECTED]
    if not active:
        return Status.REJECTED
    if all(value in APPROVED_STATUSES for value in active):
        return Status.COMPLETED
    if any(value == Status.APPROVAL for value in active):
        return Status.APPROVAL
    return Status.SENT


def group_quotations(rows, window=None):
    """
    Group quotation request rows. Groups keep the order in which their first
    row appears in `rows`.
    """
    groups = OrderedDict()
    for row in rows:
        groups.setdefault(bucket_key(row.client_id, row.created_at, window), []).append(row)

    result = []
    for (client_id, bucket), members in groups.items():
        first = members[0]
        result.append({
            'group_key': f'{client_id}-{bucket}',
            'client_id': client_id,
            'client_name': first.client.company_name,
            'created_at': min(member.created_at for member in members),
            'status': group_status(members),
            'total_amount': group_total(members),
            'items': members,
        })
    return result
