"""
Sales services
Client quotations, vendor quotation responses, sales order status and the dashboard counters
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from procurement.models import PurchaseOrder
from utils.enums import (
    POStatusChoices, QuotationRequestStatusChoices, SalesOrderStatusChoices,
    VendorQuotationStatusChoices
)
from .models import QuotationRequest, VendorQuotation, SalesOrder

logger = logging.getLogger(__name__)

# Compared verbatim; 'Sent ' keeps its trailing space
RESPONSE_UPLOAD_STATUSES = (
    VendorQuotationStatusChoices.SENT_LEGACY,
    VendorQuotationStatusChoices.DRAFT,
    VendorQuotationStatusChoices.EMAIL_RECEIVED,
)

CLOSED_SALES_ORDER_STATUSES = (SalesOrderStatusChoices.DISPATCHED, SalesOrderStatusChoices.CANCELLED)

# Orders already past this point are not moved back when material arrives
MATERIAL_READY_FROM = (
    SalesOrderStatusChoices.CREATED,
    SalesOrderStatusChoices.DESIGN_IN_REVIEW,
    SalesOrderStatusChoices.DESIGN_APPROVED,
    SalesOrderStatusChoices.PROCUREMENT_IN_PROGRESS,
)


class QuotationService:

    @staticmethod
    @transaction.atomic
    def send(client, items, user=None):
        """One SENT row per item; all rows share the same creation time"""
        if not items:
            raise ValidationError({'items': 'At least one item is required'})

        created_at = timezone.now()
        rows = [
            QuotationRequest.objects.create(
                client=client,
                item_description=item['item_description'],
                quantity=item['quantity'],
                unit_rate=item.get('unit_rate') or 0,
                remarks=item.get('remarks', ''),
                status=QuotationRequestStatusChoices.SENT,
                created_at=created_at,
                created_by=user,
            )
            for item in items
        ]
        logger.info(f"Quotation sent to {client.company_name} with {len(rows)} item(s)")
        return rows

    @staticmethod
    @transaction.atomic
    def batch_approve(ids, approval_document=None, approval_reference='', user=None):
        """Mark the given rows APPROVED and record the approval document name"""
        ids = list(dict.fromkeys(ids))
        rows = list(QuotationRequest.objects.select_for_update().filter(pk__in=ids))
        missing = sorted(set(ids) - {row.pk for row in rows})
        if missing:
            raise ValidationError({'ids': f"Quotation requests not found: {', '.join(str(pk) for pk in missing)}"})

        rejected = [row.pk for row in rows if row.status == QuotationRequestStatusChoices.REJECTED]
        if rejected:
            raise ValidationError({'ids': f"Rejected quotation requests cannot be approved: {rejected}"})

        reference = approval_document.name if approval_document else approval_reference
        stored_name = None
        for row in rows:
            row.status = QuotationRequestStatusChoices.APPROVED
            if reference:
                row.approval_reference = reference
            if approval_document:
                # The upload is written once; later rows point at the stored file
                row.approval_document = stored_name or approval_document
            row.save()
            if approval_document and stored_name is None:
                stored_name = row.approval_document.name

        logger.info(f"{len(rows)} quotation request(s) approved ({reference or 'no document'})")
        return rows


class VendorQuotationService:

    @staticmethod
    @transaction.atomic
    def upload_response(quotation, document=None, document_name='', total_amount=None, user=None):
        """
        Attach the vendor's response. Quotations still waiting on the vendor
        move to RECEIVED; others keep their status.
        """
        quotation = VendorQuotation.objects.select_for_update().get(pk=quotation.pk)
        if document is None and not document_name:
            raise ValidationError({'document': 'A response document is required'})

        if document is not None:
            quotation.received_document = document
            document_name = document_name or document.name
        quotation.received_document_name = document_name
        quotation.received_at = timezone.now()
        if total_amount is not None:
            quotation.total_amount = total_amount

        previous = quotation.status
        if previous in RESPONSE_UPLOAD_STATUSES:
            quotation.status = VendorQuotationStatusChoices.RECEIVED
        quotation.save()
        logger.info(f"Vendor quotation {quotation.pk}: response uploaded ({previous!r} -> {quotation.status!r})")
        return quotation


class SalesOrderService:

    @staticmethod
    def update_status(order, new_status):
        if new_status not in SalesOrderStatusChoices.values:
            raise ValidationError(f"Unknown sales order status '{new_status}'")
        if order.status in CLOSED_SALES_ORDER_STATUSES and order.status != new_status:
            raise ValidationError(f"{order.so_number} is {order.status} and cannot change status")

        order.status = new_status
        if new_status == SalesOrderStatusChoices.MATERIAL_READY:
            order.material_available = True
        order.save(update_fields=['status', 'material_available', 'updated_at'])
        return order

    @staticmethod
    def bulk_update_status(ids, new_status, atomic=False):
        """
        Set `new_status` on every order in `ids`.

        By default each order is updated in its own savepoint: orders that
        succeed stay updated even when others fail, and the result lists both.
        With atomic=True any failure rolls back every update and is raised.
        """
        if atomic:
            with transaction.atomic():
                for order_id in ids:
                    try:
                        order = SalesOrder.objects.select_for_update().get(pk=order_id)
                    except SalesOrder.DoesNotExist:
                        raise ValidationError(f"Sales order {order_id} not found")
                    SalesOrderService.update_status(order, new_status)
            logger.info(f"{len(ids)} sales order(s) set to {new_status}")
            return {'updated': list(ids), 'failed': []}

        updated = []
        failed = []
        for order_id in ids:
            try:
                with transaction.atomic():
                    order = SalesOrder.objects.select_for_update().get(pk=order_id)
                    SalesOrderService.update_status(order, new_status)
                updated.append(order_id)
            except SalesOrder.DoesNotExist:
                logger.error(f"Batch status update: sales order {order_id} not found")
                failed.append({'id': order_id, 'error': 'Sales order not found'})
            except ValidationError as e:
                logger.error(f"Batch status update failed for sales order {order_id}: {'; '.join(e.messages)}")
                failed.append({'id': order_id, 'error': '; '.join(e.messages)})

        logger.info(f"Batch status update to {new_status}: {len(updated)} updated, {len(failed)} failed")
        return {'updated': updated, 'failed': failed}

    @staticmethod
    def mark_material_ready(order):
        """Called when material bought for the order has passed QC"""
        if order.status not in MATERIAL_READY_FROM:
            if not order.material_available:
                order.material_available = True
                order.save(update_fields=['material_available', 'updated_at'])
            return order
        logger.info(f"{order.so_number}: material ready")
        return SalesOrderService.update_status(order, SalesOrderStatusChoices.MATERIAL_READY)


class DashboardService:

    @staticmethod
    def _counts(queryset):
        return {row['status']: row['count'] for row in queryset.order_by().values('status').annotate(count=Count('id'))}

    @staticmethod
    def stats():
        quotation_counts = DashboardService._counts(QuotationRequest.objects.all())
        order_counts = DashboardService._counts(SalesOrder.objects.all())
        vendor_quotation_counts = DashboardService._counts(VendorQuotation.objects.all())

        return {
            'quotation_requests': {
                'total': sum(quotation_counts.values()),
                'sent': quotation_counts.get(QuotationRequestStatusChoices.SENT, 0),
                'awaiting_approval': quotation_counts.get(QuotationRequestStatusChoices.APPROVAL, 0),
                'approved': quotation_counts.get(QuotationRequestStatusChoices.APPROVED, 0),
            },
            'sales_orders': {
                'total': sum(order_counts.values()),
                'by_status': {value: order_counts.get(value, 0) for value in SalesOrderStatusChoices.values},
                'material_ready': order_counts.get(SalesOrderStatusChoices.MATERIAL_READY, 0),
            },
            'vendor_quotations': {
                'total': sum(vendor_quotation_counts.values()),
                'awaiting_response': sum(vendor_quotation_counts.get(value, 0) for value in RESPONSE_UPLOAD_STATUSES),
                'received': vendor_quotation_counts.get(VendorQuotationStatusChoices.RECEIVED, 0),
            },
            # Exact match on the legacy value, trailing space included
            'approved_purchase_orders': PurchaseOrder.objects.filter(
                status=POStatusChoices.APPROVED_LEGACY
            ).count(),
        }
