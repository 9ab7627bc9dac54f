"""
Purchase order reconciliation services

PO balance, shortage/overage reconciliation against GRN-accepted quantities
and replacement orders for shortfalls.
"""
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum, Q

from utils.enums import GRNItemStatusChoices, POItemBalanceStatus, POStatusChoices
from utils.quantities import ZERO, qty_tolerance, shortage_overage, to_decimal
from .models import PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger(__name__)


# GRN line statuses whose accepted quantity counts against the PO balance.
# 'Approved ' (trailing space) and the QC-level values are legacy rows kept verbatim.
COUNTED_GRN_ITEM_STATUSES = (
    'RECEIVED',
    GRNItemStatusChoices.EXCESS_ACCEPTED,
    'Approved ',
    'APPROVED',
    GRNItemStatusChoices.AVAILABLE,
    'PASSED',
    'ACCEPTED',
    GRNItemStatusChoices.SHORTAGE,
)

# Reconciliation also sees overages still waiting for an excess decision
RECONCILED_GRN_ITEM_STATUSES = COUNTED_GRN_ITEM_STATUSES + (GRNItemStatusChoices.OVERAGE,)


def _accepted_by_item(purchase_order, grn_item_filter):
    rows = PurchaseOrderItem.objects.filter(
        purchase_order=purchase_order
    ).annotate(
        accepted_total=Sum('grn_items__accepted_qty', filter=grn_item_filter)
    ).order_by('id')
    return [(row, to_decimal(row.accepted_total)) for row in rows]


def line_balance_status(balance):
    tolerance = qty_tolerance()
    if balance > tolerance:
        return POItemBalanceStatus.OPEN
    if balance < -tolerance:
        return POItemBalanceStatus.EXCESS
    return POItemBalanceStatus.CLOSED


class POBalanceService:
    """Ordered vs. accepted quantities per PO line"""

    @staticmethod
    def balance(purchase_order):
        lines = []
        for item, accepted in _accepted_by_item(
            purchase_order,
            Q(grn_items__status__in=COUNTED_GRN_ITEM_STATUSES)
        ):
            balance = item.quantity - accepted
            lines.append({
                'po_item_id': item.id,
                'item_code': item.item_code,
                'material_name': item.material_name,
                'ordered_qty': item.quantity,
                'accepted_qty': accepted,
                'balance_qty': balance,
                'status': line_balance_status(balance),
            })

        return {
            'po_id': purchase_order.id,
            'po_number': purchase_order.po_number,
            'overall_status': POBalanceService.overall_status(lines),
            'items': lines,
        }

    @staticmethod
    def overall_status(lines):
        statuses = [line['status'] for line in lines]
        if statuses and all(s == POItemBalanceStatus.CLOSED for s in statuses):
            return 'COMPLETED'
        if any(s == POItemBalanceStatus.OPEN for s in statuses):
            return 'PARTIALLY_RECEIVED'
        return 'ORDERED'

    @staticmethod
    def sync_status(purchase_order):
        """Move the PO to PARTIALLY_RECEIVED/COMPLETED once receipts are accepted"""
        balance = POBalanceService.balance(purchase_order)
        lines = balance['items']
        if lines and not any(line['status'] == POItemBalanceStatus.OPEN for line in lines):
            new_status = POStatusChoices.COMPLETED
        elif any(line['accepted_qty'] > ZERO for line in lines):
            new_status = POStatusChoices.PARTIALLY_RECEIVED
        else:
            return purchase_order.status

        if purchase_order.status != new_status and purchase_order.status != POStatusChoices.CANCELLED:
            logger.info(f"PO {purchase_order.po_number}: {purchase_order.status} -> {new_status}")
            purchase_order.status = new_status
            purchase_order.save(update_fields=['status', 'updated_at'])
        return purchase_order.status


class ReconciliationService:
    """Shortage/overage of accepted quantities against each PO line"""

    @staticmethod
    def reconcile(purchase_order):
        lines = []
        for item, accepted in _accepted_by_item(
            purchase_order,
            Q(grn_items__status__in=RECONCILED_GRN_ITEM_STATUSES)
        ):
            shortage, overage = shortage_overage(item.quantity, accepted)
            lines.append({
                'po_item_id': item.id,
                'item_code': item.item_code,
                'ordered_qty': item.quantity,
                'accepted_qty': accepted,
                'shortage_qty': shortage,
                'overage_qty': overage,
            })
        return lines

    @staticmethod
    @transaction.atomic
    def create_replacement_po(purchase_order, user=None, expected_date=None, notes=''):
        """
        Raise one replacement PO for every shortfall on `purchase_order`.
        A PO can be replaced once.
        """
        purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)

        if purchase_order.replacement_orders.exists():
            existing = purchase_order.replacement_orders.first()
            raise ValidationError(
                f"Replacement PO {existing.po_number} already exists for {purchase_order.po_number}"
            )

        tolerance = qty_tolerance()
        shortfalls = [
            line for line in ReconciliationService.reconcile(purchase_order)
            if line['shortage_qty'] > tolerance
        ]
        if not shortfalls:
            raise ValidationError(f"{purchase_order.po_number} has no shortages to replace")

        replacement = PurchaseOrder.objects.create(
            vendor=purchase_order.vendor,
            parent_po=purchase_order,
            expected_date=expected_date,
            notes=notes or f"Replacement for shortages on {purchase_order.po_number}",
            created_by=user,
        )

        original_items = {item.id: item for item in purchase_order.items.all()}
        for line in shortfalls:
            original = original_items[line['po_item_id']]
            PurchaseOrderItem.objects.create(
                purchase_order=replacement,
                item_code=original.item_code,
                description=original.description,
                material_name=original.material_name,
                material_type=original.material_type,
                unit=original.unit,
                quantity=line['shortage_qty'],
                unit_rate=original.unit_rate,
            )

        logger.info(
            f"Replacement PO {replacement.po_number} created for {purchase_order.po_number} "
            f"covering {len(shortfalls)} shortfall line(s)"
        )
        return replacement


class PaymentService:

    @staticmethod
    def outstanding(purchase_order, exclude_payment=None):
        """PO value not yet covered by non-cancelled payments"""
        payments = purchase_order.payments.exclude(status='CANCELLED')
        if exclude_payment is not None and exclude_payment.pk:
            payments = payments.exclude(pk=exclude_payment.pk)
        paid = payments.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        return purchase_order.total_amount - paid

