"""
GRN service
Receipt of goods against a purchase order and the excess decisions on GRN lines
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Sum

from utils.enums import (
    AllocationStatusChoices, GRNItemStatusChoices, GRNStatusChoices, LedgerTransactionTypeChoices,
    ReferenceDocTypeChoices, StockEntryStatusChoices, StockEntryTypeChoices
)
from utils.quantities import ZERO, to_decimal
from .allocation_service import allocation_status
from .models import GRN, GRNItem, StockEntry
from .models_grn import GRN_WORKFLOW
from .transaction_manager import StockTransactionManager

logger = logging.getLogger(__name__)


class GRNService:

    @staticmethod
    @transaction.atomic
    def create_with_items(purchase_order, items, user=None, grn_date=None, notes=''):
        """
        Create a GRN header and its lines in one call.

        Each item: {'po_item': PurchaseOrderItem | None, 'item_code', 'received_qty', ...}.
        Item code, material and ordered quantity default from the PO line.
        """
        if not items:
            raise ValidationError({'items': 'At least one item is required'})

        grn = GRN(purchase_order=purchase_order, notes=notes or '', received_by=user)
        if grn_date:
            grn.grn_date = grn_date
        grn.save()

        for item_data in items:
            po_item = item_data.get('po_item')
            if po_item is not None and po_item.purchase_order_id != purchase_order.id:
                raise ValidationError({'items': f'PO item {po_item.pk} does not belong to {purchase_order.po_number}'})

            received_qty = to_decimal(item_data.get('received_qty'))
            if received_qty < ZERO:
                raise ValidationError({'items': 'Received quantity cannot be negative'})

            item_code = item_data.get('item_code') or (po_item.item_code if po_item else '')
            if not item_code:
                raise ValidationError({'items': 'Item code is required when no PO item is given'})

            GRNItem.objects.create(
                grn=grn,
                po_item=po_item,
                item_code=item_code,
                material_name=item_data.get('material_name') or (po_item.material_name if po_item else ''),
                material_type=item_data.get('material_type') or (po_item.material_type if po_item else ''),
                unit=item_data.get('unit') or (po_item.unit if po_item else 'NOS'),
                ordered_qty=to_decimal(
                    item_data.get('ordered_qty'),
                    default=po_item.quantity if po_item else ZERO
                ),
                received_qty=received_qty,
                remarks=item_data.get('remarks') or '',
            )

        if grn.items.filter(received_qty__gt=0).exists():
            GRN_WORKFLOW.fire(grn, 'RECEIVE')
            grn.save(update_fields=['status', 'updated_at'])

        logger.info(f"{grn.grn_number} created against {purchase_order.po_number} with {len(items)} item(s)")
        return grn

    @staticmethod
    @transaction.atomic
    def update_received(grn, items, user=None):
        """
        Record received quantities for existing lines: items = [{'id', 'received_qty'}].
        Moves the GRN back to RECEIVED and sends its inspection back for re-inspection.
        """
        grn = GRN.objects.select_for_update().get(pk=grn.pk)
        GRN_WORKFLOW.next_state(grn.status, 'RECEIVE')

        lines = {line.pk: line for line in grn.items.select_for_update()}
        for item_data in items:
            line = lines.get(item_data.get('id'))
            if line is None:
                raise ValidationError({'items': f"GRN item {item_data.get('id')} does not belong to {grn.grn_number}"})
            received_qty = to_decimal(item_data.get('received_qty'))
            if received_qty < ZERO:
                raise ValidationError({'items': 'Received quantity cannot be negative'})
            if received_qty == line.received_qty:
                continue
            if line.allocated_qty > ZERO:
                raise ValidationError({
                    'items': f"{line.item_code}: {line.allocated_qty} already allocated, received quantity cannot change"
                })

            # QC results no longer describe the delivery; they are recorded again on re-inspection
            line.received_qty = received_qty
            line.accepted_qty = ZERO
            line.rejected_qty = ZERO
            line.shortage_qty = ZERO
            line.overage_qty = ZERO
            line.status = GRNItemStatusChoices.PENDING
            line.allocation_status = AllocationStatusChoices.PENDING
            line.version += 1
            line.save(update_fields=[
                'received_qty', 'accepted_qty', 'rejected_qty', 'shortage_qty', 'overage_qty',
                'status', 'allocation_status', 'version'
            ])

        GRN_WORKFLOW.fire(grn, 'RECEIVE')
        if user is not None:
            grn.received_by = user
        grn.save(update_fields=['status', 'received_by', 'updated_at'])

        GRNService._reopen_inspection(grn)
        return grn

    @staticmethod
    def _reopen_inspection(grn):
        from quality.models import QCInspection, QC_WORKFLOW

        inspection = QCInspection.objects.filter(grn=grn).first()
        if inspection is None:
            return
        if QC_WORKFLOW.can_fire(inspection.status, 'GRN_UPDATED'):
            QC_WORKFLOW.fire(inspection, 'GRN_UPDATED')
            inspection.save(update_fields=['status', 'updated_at'])

    @staticmethod
    @transaction.atomic
    def approve_excess(grn_item, notes='', user=None):
        """Keep the over-delivered quantity: OVERAGE -> EXCESS_ACCEPTED"""
        grn_item = GRNItem.objects.select_for_update().get(pk=grn_item.pk)
        if grn_item.status != GRNItemStatusChoices.OVERAGE:
            raise ValidationError(f"Only OVERAGE items can be approved as excess; item is {grn_item.status}")

        grn_item.status = GRNItemStatusChoices.EXCESS_ACCEPTED
        if notes:
            grn_item.remarks = f"{grn_item.remarks}\n{notes}".strip()
        grn_item.version += 1
        grn_item.save(update_fields=['status', 'remarks', 'version'])
        logger.info(f"Excess of {grn_item.overage_qty} accepted on GRN item {grn_item.pk} ({grn_item.item_code})")
        return grn_item

    @staticmethod
    @transaction.atomic
    def reject_excess(grn_item, reason='', user=None):
        """
        Send the over-delivered quantity back: accepted is reset to the ordered
        quantity and the excess is booked as rejected. When the GRN was already
        received into stock the excess is taken back out of the receiving hold.
        """
        grn_item = GRNItem.objects.select_for_update().get(pk=grn_item.pk)
        if grn_item.status != GRNItemStatusChoices.OVERAGE:
            raise ValidationError(f"Only OVERAGE items can have their excess rejected; item is {grn_item.status}")
        if grn_item.allocated_qty > grn_item.ordered_qty:
            raise ValidationError(
                f"{grn_item.allocated_qty} already allocated, more than the ordered {grn_item.ordered_qty}"
            )

        excess = grn_item.accepted_qty - grn_item.ordered_qty
        grn_item.accepted_qty = grn_item.ordered_qty
        grn_item.rejected_qty = grn_item.rejected_qty + excess
        grn_item.overage_qty = ZERO
        grn_item.status = GRNItemStatusChoices.AVAILABLE
        grn_item.allocation_status = allocation_status(grn_item.accepted_qty, grn_item.allocated_qty)
        if reason:
            grn_item.remarks = f"{grn_item.remarks}\n{reason}".strip()
        grn_item.version += 1
        grn_item.save(update_fields=[
            'accepted_qty', 'rejected_qty', 'overage_qty', 'status', 'allocation_status', 'remarks', 'version'
        ])

        grn = grn_item.grn
        received_into_stock = StockEntry.objects.filter(
            grn=grn,
            entry_type=StockEntryTypeChoices.MATERIAL_RECEIPT,
            status=StockEntryStatusChoices.SUBMITTED,
            items__item_code=grn_item.item_code,
        ).exists()
        if received_into_stock and excess > ZERO:
            StockTransactionManager.post(
                item_code=grn_item.item_code,
                warehouse=StockTransactionManager.receiving_warehouse(),
                transaction_type=LedgerTransactionTypeChoices.OUT,
                quantity=excess,
                reference_doc_type=ReferenceDocTypeChoices.GRN,
                reference_doc_id=grn.pk,
                reference_doc_number=grn.grn_number,
                remarks=f"Excess returned to vendor ({grn.grn_number})",
                user=user,
                material_name=grn_item.material_name,
                material_type=grn_item.material_type,
            )

        logger.info(f"Excess of {excess} rejected on GRN item {grn_item.pk} ({grn_item.item_code})")
        return grn_item

    @staticmethod
    def summary(grn):
        """Quantity totals for one GRN, overall and per line status"""
        totals = grn.items.aggregate(
            total_items=Count('id'),
            total_ordered_qty=Sum('ordered_qty'),
            total_received_qty=Sum('received_qty'),
            total_accepted_qty=Sum('accepted_qty'),
            total_rejected_qty=Sum('rejected_qty'),
            total_shortage_qty=Sum('shortage_qty'),
            total_overage_qty=Sum('overage_qty'),
        )
        by_status = {
            row['status']: {
                'count': row['count'],
                'received_qty': to_decimal(row['received_qty']),
                'accepted_qty': to_decimal(row['accepted_qty']),
                'rejected_qty': to_decimal(row['rejected_qty']),
            }
            for row in grn.items.values('status').annotate(
                count=Count('id'),
                received_qty=Sum('received_qty'),
                accepted_qty=Sum('accepted_qty'),
                rejected_qty=Sum('rejected_qty'),
            ).order_by('status')
        }
        summary = {key: (value if key == 'total_items' else to_decimal(value)) for key, value in totals.items()}
        summary['by_status'] = by_status
        return summary

    @staticmethod
    def stats():
        counts = {row['status']: row['count'] for row in GRN.objects.order_by().values('status').annotate(count=Count('id'))}
        return {
            'total_grns': sum(counts.values()),
            'pending_grns': counts.get(GRNStatusChoices.PENDING, 0),
            'received_grns': counts.get(GRNStatusChoices.RECEIVED, 0),
            'inspected_grns': counts.get(GRNStatusChoices.INSPECTED, 0),
            'approved_grns': counts.get(GRNStatusChoices.APPROVED, 0),
            'rejected_grns': counts.get(GRNStatusChoices.REJECTED, 0),
        }
