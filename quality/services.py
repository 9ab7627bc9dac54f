"""
QC inspection service
Recording inspection results against a GRN and resolving the inspection,
which either releases the accepted material into stock or rejects the GRN
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count

from inventory.models import GRN, GRNItem
from inventory.allocation_service import allocation_status
from inventory.models_grn import GRN_WORKFLOW
from inventory.transaction_manager import StockTransactionManager
from procurement.services import POBalanceService
from sales.services import SalesOrderService
from utils.enums import (
    GRNItemStatusChoices, GRNStatusChoices,
    QCLineStatusChoices, QCStatusChoices
)
from utils.quantities import ZERO, qty_tolerance, quantities_equal, to_decimal
from .models import QCInspection, QCInspectionItem, QC_WORKFLOW
from .status import derive_lines

logger = logging.getLogger(__name__)

RESOLUTIONS = ('ACCEPT', 'ACCEPT_SHORTAGE', 'ACCEPT_OVERAGE', 'FAIL')


class QCInspectionService:

    @staticmethod
    @transaction.atomic
    def create(grn, user=None, inspection_date=None, defects='', remarks='', items=None):
        """Open the inspection of a GRN; a GRN has at most one inspection"""
        grn = GRN.objects.select_for_update().get(pk=grn.pk)
        if QCInspection.objects.filter(grn=grn).exists():
            raise ValidationError(f"{grn.grn_number} already has a QC inspection")
        if not GRN_WORKFLOW.can_fire(grn.status, 'INSPECT'):
            raise ValidationError(f"{grn.grn_number} is {grn.status}; only received GRNs can be inspected")

        inspection = QCInspection(grn=grn, defects=defects or '', remarks=remarks or '', inspected_by=user)
        if inspection_date:
            inspection.inspection_date = inspection_date
        inspection.save()
        logger.info(f"QC inspection {inspection.pk} opened for {grn.grn_number}")

        if items:
            inspection = QCInspectionService.record_results(inspection, items, user=user)
        return inspection

    @staticmethod
    @transaction.atomic
    def start(inspection, user=None):
        inspection = QCInspection.objects.select_for_update().select_related('grn').get(pk=inspection.pk)
        if inspection.grn.status == GRNStatusChoices.REJECTED:
            raise ValidationError(f"{inspection.grn.grn_number} has been rejected and cannot be re-inspected")
        QC_WORKFLOW.fire(inspection, 'START')
        if user is not None:
            inspection.inspected_by = user
        inspection.save(update_fields=['status', 'inspected_by', 'updated_at'])
        return inspection

    @staticmethod
    @transaction.atomic
    def record_results(inspection, items, user=None):
        """
        Replace the inspection lines with `items` and copy the results onto the GRN.

        Each item: {'grn_item': GRNItem | id, 'accepted_qty', 'rejected_qty' (optional), 'remarks'}.
        A missing rejected quantity is taken as received - accepted; every line
        must satisfy accepted + rejected == received.
        """
        if not items:
            raise ValidationError({'items': 'At least one item is required'})

        inspection = QCInspection.objects.select_for_update().get(pk=inspection.pk)
        grn = GRN.objects.select_for_update().get(pk=inspection.grn_id)
        GRN_WORKFLOW.next_state(grn.status, 'INSPECT')

        grn_items = {line.pk: line for line in GRNItem.objects.select_for_update().filter(grn=grn)}
        tolerance = qty_tolerance()

        rows = []
        for item_data in items:
            grn_item_ref = item_data.get('grn_item')
            grn_item_id = getattr(grn_item_ref, 'pk', grn_item_ref)
            grn_item = grn_items.get(grn_item_id)
            if grn_item is None:
                raise ValidationError({'items': f"GRN item {grn_item_id} does not belong to {grn.grn_number}"})

            received = grn_item.received_qty
            accepted = to_decimal(item_data.get('accepted_qty'))
            rejected = to_decimal(item_data.get('rejected_qty'), default=received - accepted)

            if accepted < ZERO or rejected < ZERO:
                raise ValidationError({'items': f"Quantities for {grn_item.item_code} cannot be negative"})
            if not quantities_equal(accepted + rejected, received):
                raise ValidationError({
                    'items': (
                        f"{grn_item.item_code}: accepted {accepted} + rejected {rejected} "
                        f"must equal received {received}"
                    )
                })
            if accepted < grn_item.allocated_qty - tolerance:
                raise ValidationError({
                    'items': f"{grn_item.item_code}: {grn_item.allocated_qty} already allocated, cannot accept only {accepted}"
                })

            rows.append({
                'grn_item': grn_item,
                'ordered_qty': grn_item.ordered_qty,
                'received_qty': received,
                'accepted_qty': accepted,
                'rejected_qty': rejected,
                'remarks': item_data.get('remarks') or '',
            })

        lines, aggregate = derive_lines(rows)

        inspection.items.all().delete()
        for row, line in zip(rows, lines):
            grn_item = row['grn_item']
            QCInspectionItem.objects.create(
                inspection=inspection,
                grn_item=grn_item,
                item_code=grn_item.item_code,
                ordered_qty=row['ordered_qty'],
                received_qty=row['received_qty'],
                accepted_qty=row['accepted_qty'],
                rejected_qty=row['rejected_qty'],
                line_status=line['line_status'],
                shortage_qty=line['shortage_qty'],
                overage_qty=line['overage_qty'],
                remarks=row['remarks'],
            )

            grn_item.accepted_qty = row['accepted_qty']
            grn_item.rejected_qty = row['rejected_qty']
            grn_item.shortage_qty = line['shortage_qty']
            grn_item.overage_qty = line['overage_qty']
            grn_item.status = line['line_status']
            grn_item.allocation_status = allocation_status(grn_item.accepted_qty, grn_item.allocated_qty)
            grn_item.version += 1
            grn_item.save(update_fields=[
                'accepted_qty', 'rejected_qty', 'shortage_qty', 'overage_qty',
                'status', 'allocation_status', 'version'
            ])

        event = 'RESULTS_MATCH' if aggregate == QCStatusChoices.PASSED else 'RESULTS_DISCREPANT'
        QC_WORKFLOW.fire(inspection, event)
        if user is not None:
            inspection.inspected_by = user
        inspection.save(update_fields=['status', 'inspected_by', 'updated_at'])

        GRN_WORKFLOW.fire(grn, 'INSPECT')
        grn.save(update_fields=['status', 'updated_at'])

        logger.info(f"QC results recorded for {grn.grn_number}: {len(rows)} line(s), {inspection.status}")
        return inspection

    @staticmethod
    @transaction.atomic
    def resolve(inspection, decision, user=None, remarks=''):
        """
        Close the inspection. ACCEPT / ACCEPT_SHORTAGE / ACCEPT_OVERAGE approve
        the GRN and receive the accepted quantities into the receiving hold;
        FAIL rejects the GRN.
        Returns {'inspection', 'stock_entry'}.
        """
        if decision not in RESOLUTIONS:
            raise ValidationError({'decision': f"Unknown decision '{decision}'"})

        inspection = QCInspection.objects.select_for_update().get(pk=inspection.pk)
        grn = GRN.objects.select_for_update().select_related('purchase_order').get(pk=inspection.grn_id)

        if decision == 'ACCEPT_SHORTAGE' and not inspection.items.filter(line_status=QCLineStatusChoices.SHORTAGE).exists():
            raise ValidationError("No line is short; nothing to accept as shortage")
        if decision == 'ACCEPT_OVERAGE' and not inspection.items.filter(line_status=QCLineStatusChoices.OVERAGE).exists():
            raise ValidationError("No line is over; nothing to accept as overage")

        QC_WORKFLOW.fire(inspection, decision)
        if remarks:
            inspection.remarks = f"{inspection.remarks}\n{remarks}".strip()
        if user is not None:
            inspection.inspected_by = user
        inspection.save(update_fields=['status', 'remarks', 'inspected_by', 'updated_at'])

        if decision == 'FAIL':
            QCInspectionService._reject_grn(grn)
            return {'inspection': inspection, 'stock_entry': None}

        GRN_WORKFLOW.fire(grn, 'APPROVE')
        grn.save(update_fields=['status', 'updated_at'])

        stock_entry = StockTransactionManager.create_from_grn(grn, user=user)

        purchase_order = grn.purchase_order
        if purchase_order.sales_order_id:
            SalesOrderService.mark_material_ready(purchase_order.sales_order)
        POBalanceService.sync_status(purchase_order)

        logger.info(f"{grn.grn_number} approved by QC ({inspection.status})")
        return {'inspection': inspection, 'stock_entry': stock_entry}

    @staticmethod
    def _reject_grn(grn):
        lines = list(GRNItem.objects.select_for_update().filter(grn=grn))
        allocated = [line.item_code for line in lines if line.allocated_qty > ZERO]
        if allocated:
            raise ValidationError(f"Cannot reject {grn.grn_number}: already allocated {', '.join(allocated)}")

        for line in lines:
            line.rejected_qty = line.received_qty
            line.accepted_qty = ZERO
            line.shortage_qty = ZERO
            line.overage_qty = ZERO
            line.status = GRNItemStatusChoices.REJECTED
            line.version += 1
            line.save(update_fields=[
                'accepted_qty', 'rejected_qty', 'shortage_qty', 'overage_qty', 'status', 'version'
            ])

        # Failing before any results were recorded leaves the GRN at RECEIVED
        if grn.status == GRNStatusChoices.RECEIVED:
            GRN_WORKFLOW.fire(grn, 'INSPECT')
        GRN_WORKFLOW.fire(grn, 'REJECT')
        grn.save(update_fields=['status', 'updated_at'])
        logger.warning(f"{grn.grn_number} rejected by QC")

    @staticmethod
    def stats():
        counts = {
            row['status']: row['count']
            for row in QCInspection.objects.order_by().values('status').annotate(count=Count('id'))
        }
        return {
            'total_inspections': sum(counts.values()),
            'by_status': {value: counts.get(value, 0) for value in QCStatusChoices.values},
            'awaiting_resolution': counts.get(QCStatusChoices.PASSED, 0) + counts.get(QCStatusChoices.IN_PROGRESS, 0),
        }
