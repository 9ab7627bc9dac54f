"""
Warehouse Allocation Service
Moves QC-accepted quantities out of the receiving hold into stock warehouses
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q

from utils.enums import (
    AllocationStatusChoices, GRNStatusChoices, LedgerTransactionTypeChoices, ReferenceDocTypeChoices
)
from utils.exceptions import ConcurrentAllocationError
from utils.numbering import padded_reference
from utils.quantities import ZERO, qty_tolerance, to_decimal
from .models import GRNItem, WarehouseAllocation
from .transaction_manager import NON_STOCK_MATERIAL_TYPES, StockTransactionManager, is_stock_item

logger = logging.getLogger(__name__)


def allocation_status(accepted, allocated):
    if allocated <= ZERO:
        return AllocationStatusChoices.PENDING
    if allocated >= accepted - qty_tolerance():
        return AllocationStatusChoices.FULLY_ALLOCATED
    return AllocationStatusChoices.PARTIAL


class WarehouseAllocationService:
    """
    Allocation of accepted GRN quantities.

    A GRN line is re-read under a row lock and then updated with a
    compare-and-swap on its `version` column, so two allocations racing for
    the same pending quantity cannot both be applied.
    """

    @staticmethod
    def pending():
        """Stock lines of approved GRNs with accepted quantity not yet allocated"""
        non_stock = Q()
        for material_type in NON_STOCK_MATERIAL_TYPES:
            non_stock |= Q(material_type__iexact=material_type)
        return GRNItem.objects.filter(
            grn__status=GRNStatusChoices.APPROVED,
            accepted_qty__gt=F('allocated_qty')
        ).exclude(
            allocation_status=AllocationStatusChoices.FULLY_ALLOCATED
        ).exclude(
            non_stock
        ).select_related('grn', 'grn__purchase_order', 'grn__purchase_order__vendor').order_by('grn_id', 'id')

    @staticmethod
    def allocate(grn_item_id, target_warehouse, allocate_qty, remarks='', user=None):
        target_code = str(target_warehouse or '').strip()
        if not target_code:
            raise ValidationError({'target_warehouse': 'Target warehouse is required'})

        quantity = to_decimal(allocate_qty, default=None)
        if quantity is None or quantity <= ZERO:
            raise ValidationError({'allocate_qty': 'Allocation quantity must be greater than zero'})

        with transaction.atomic():
            grn_item = GRNItem.objects.select_for_update().get(pk=grn_item_id)
            if grn_item.grn.status != GRNStatusChoices.APPROVED:
                raise ValidationError(
                    f"{grn_item.grn.grn_number} is {grn_item.grn.status}; only approved GRNs can be allocated"
                )
            if not is_stock_item(grn_item.material_type):
                raise ValidationError(
                    f"{grn_item.item_code} ({grn_item.material_type}) is not received into stock and cannot be allocated"
                )

            pending = grn_item.pending_allocation_qty
            if quantity > pending:
                logger.warning(
                    f"Allocation rejected for GRN item {grn_item.pk}: requested {quantity}, pending {pending}"
                )
                raise ValidationError(
                    f"Allocation quantity {quantity} exceeds pending quantity {pending} for {grn_item.item_code}"
                )

            hold = StockTransactionManager.receiving_warehouse()
            target = StockTransactionManager.get_or_create_warehouse(target_code)
            if target.pk == hold.pk:
                raise ValidationError({'target_warehouse': f'Cannot allocate into the receiving hold {hold.code}'})

            new_allocated = grn_item.allocated_qty + quantity
            new_status = allocation_status(grn_item.accepted_qty, new_allocated)

            updated = GRNItem.objects.filter(
                pk=grn_item.pk,
                version=grn_item.version,
            ).update(
                allocated_qty=new_allocated,
                allocation_status=new_status,
                version=F('version') + 1,
            )
            if updated != 1:
                raise ConcurrentAllocationError(
                    f"GRN item {grn_item.pk} was modified by another allocation; reload and retry"
                )

            allocation = WarehouseAllocation.objects.create(
                grn_item=grn_item,
                from_warehouse=hold,
                to_warehouse=target,
                quantity=quantity,
                remarks=remarks or '',
                allocated_by=user,
            )

            reference_number = padded_reference('GRN', grn_item.grn_id)
            ledger_remarks = remarks or f"Allocated from {hold.code} to {target.code}"
            for warehouse, transaction_type in (
                (hold, LedgerTransactionTypeChoices.OUT),
                (target, LedgerTransactionTypeChoices.IN),
            ):
                StockTransactionManager.post(
                    item_code=grn_item.item_code,
                    warehouse=warehouse,
                    transaction_type=transaction_type,
                    quantity=quantity,
                    reference_doc_type=ReferenceDocTypeChoices.WAREHOUSE_ALLOCATION,
                    reference_doc_id=allocation.pk,
                    reference_doc_number=reference_number,
                    remarks=ledger_remarks,
                    user=user,
                    material_name=grn_item.material_name,
                    material_type=grn_item.material_type,
                )

        grn_item.refresh_from_db()
        logger.info(
            f"Allocated {quantity} of {grn_item.item_code} ({reference_number}) "
            f"{hold.code} -> {target.code}; {grn_item.allocation_status}"
        )
        return {
            'allocation_id': allocation.pk,
            'grn_item_id': grn_item.pk,
            'item_code': grn_item.item_code,
            'from_warehouse': hold.code,
            'to_warehouse': target.code,
            'allocated_qty': quantity,
            'total_allocated_qty': grn_item.allocated_qty,
            'pending_allocation_qty': grn_item.pending_allocation_qty,
            'allocation_status': grn_item.allocation_status,
        }
