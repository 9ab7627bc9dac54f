"""
Stock Transaction Manager
Every stock movement goes through here: one ledger row per movement and the
matching per-warehouse balance update, plus the stock entry lifecycle
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from utils.enums import (
    LedgerTransactionTypeChoices, ReferenceDocTypeChoices,
    StockEntryStatusChoices, StockEntryTypeChoices
)
from utils.quantities import ZERO, to_decimal
from .models import Warehouse, StockLedgerEntry, StockBalance, StockEntry, StockEntryItem

logger = logging.getLogger(__name__)

IN = LedgerTransactionTypeChoices.IN
OUT = LedgerTransactionTypeChoices.OUT
ADJUSTMENT = LedgerTransactionTypeChoices.ADJUSTMENT

# Finished and sub-assembly items are not received into raw material stock
NON_STOCK_MATERIAL_TYPES = ('FG', 'FINISHED_GOOD', 'SUB_ASSEMBLY', 'SUB')


def is_stock_item(material_type):
    return (material_type or '').strip().upper() not in NON_STOCK_MATERIAL_TYPES


REVERSAL = {
    IN: OUT,
    OUT: IN,
    ADJUSTMENT: OUT,
}


class StockTransactionManager:
    """
    Centralized manager for stock ledger postings
    """

    @staticmethod
    def get_or_create_warehouse(code):
        """Get or create a warehouse by code"""
        code = code.strip().upper()
        warehouse, created = Warehouse.objects.get_or_create(
            code=code,
            defaults={
                'name': code.replace('-', ' ').title(),
                'warehouse_type': Warehouse.infer_type(code),
            }
        )
        if created:
            logger.info(f"Warehouse {code} created on demand ({warehouse.warehouse_type})")
        return warehouse

    @staticmethod
    def receiving_warehouse():
        return StockTransactionManager.get_or_create_warehouse(
            settings.ERP_SETTINGS.get('DEFAULT_RECEIVING_WAREHOUSE', 'RM-HOLD')
        )

    @staticmethod
    @transaction.atomic
    def post(item_code, warehouse, transaction_type, quantity, reference_doc_type,
             reference_doc_id=None, reference_doc_number='', remarks='', user=None,
             material_name='', material_type=''):
        """
        Post one movement. IN and ADJUSTMENT add, OUT subtracts and is clamped
        at zero. Returns the ledger entry.
        """
        if transaction_type not in REVERSAL:
            raise ValidationError(f"Unknown transaction type '{transaction_type}'")

        quantity = abs(to_decimal(quantity))

        balance, created = StockBalance.objects.select_for_update().get_or_create(
            item_code=item_code,
            warehouse=warehouse,
            defaults={
                'current_balance': ZERO,
                'material_name': material_name,
                'material_type': material_type,
            }
        )

        if transaction_type == OUT:
            new_balance = balance.current_balance - quantity
            if new_balance < ZERO:
                logger.warning(
                    f"Stock for {item_code} @ {warehouse.code} would go negative "
                    f"({balance.current_balance} - {quantity}); clamped to 0"
                )
                new_balance = ZERO
        else:
            new_balance = balance.current_balance + quantity

        balance.current_balance = new_balance
        if material_name and not balance.material_name:
            balance.material_name = material_name
        if material_type and not balance.material_type:
            balance.material_type = material_type
        balance.save()

        entry = StockLedgerEntry.objects.create(
            item_code=item_code,
            warehouse=warehouse,
            transaction_type=transaction_type,
            quantity=quantity,
            reference_doc_type=reference_doc_type,
            reference_doc_id=reference_doc_id,
            reference_doc_number=reference_doc_number,
            balance_after=new_balance,
            remarks=remarks or '',
            created_by=user,
        )
        logger.debug(
            f"Ledger {transaction_type} {quantity} {item_code} @ {warehouse.code} "
            f"({reference_doc_number}) balance={new_balance}"
        )
        return entry

    # ------------------------------------------------------------------
    # Stock entries
    # ------------------------------------------------------------------

    @staticmethod
    def validate_entry(entry, items):
        """Header rules plus per-line quantity rules for one entry"""
        entry.clean()

        if not items:
            raise ValidationError({'items': 'At least one item is required'})

        for item in items:
            quantity = to_decimal(item['quantity'] if isinstance(item, dict) else item.quantity)
            item_code = item['item_code'] if isinstance(item, dict) else item.item_code
            if entry.entry_type == StockEntryTypeChoices.MATERIAL_ADJUSTMENT:
                if quantity == ZERO:
                    raise ValidationError({'items': f'Adjustment quantity for {item_code} cannot be zero'})
            elif quantity <= ZERO:
                raise ValidationError({'items': f'Quantity for {item_code} must be greater than zero'})

    @staticmethod
    def movements(entry):
        """(item, warehouse, transaction_type, quantity) tuples an entry posts on submit"""
        result = []
        for item in entry.items.all():
            if entry.entry_type == StockEntryTypeChoices.MATERIAL_RECEIPT:
                result.append((item, entry.to_warehouse, IN, item.quantity))
            elif entry.entry_type == StockEntryTypeChoices.MATERIAL_ISSUE:
                result.append((item, entry.from_warehouse, OUT, item.quantity))
            elif entry.entry_type == StockEntryTypeChoices.MATERIAL_TRANSFER:
                result.append((item, entry.from_warehouse, OUT, item.quantity))
                result.append((item, entry.to_warehouse, IN, item.quantity))
            elif entry.entry_type == StockEntryTypeChoices.MATERIAL_ADJUSTMENT:
                if item.quantity >= ZERO:
                    result.append((item, entry.adjustment_warehouse, ADJUSTMENT, item.quantity))
                else:
                    result.append((item, entry.adjustment_warehouse, OUT, abs(item.quantity)))
        return result

    @staticmethod
    def _reference(entry):
        if entry.grn_id:
            return ReferenceDocTypeChoices.GRN, entry.grn_id, entry.grn.grn_number
        return ReferenceDocTypeChoices.STOCK_ENTRY, entry.id, entry.entry_no

    @staticmethod
    @transaction.atomic
    def create_entry(header, items, user=None, submit=False):
        """
        Create a stock entry with its lines. `header` holds StockEntry field
        values; `items` is a list of dicts with StockEntryItem field values.
        """
        entry = StockEntry(created_by=user, **header)
        StockTransactionManager.validate_entry(entry, items)
        entry.save()

        for item_data in items:
            StockEntryItem.objects.create(stock_entry=entry, **item_data)

        logger.info(f"Stock entry {entry.entry_no} ({entry.entry_type}) created with {len(items)} item(s)")

        if submit:
            StockTransactionManager.submit_entry(entry, user)
        return entry

    @staticmethod
    @transaction.atomic
    def submit_entry(entry, user=None):
        entry = StockEntry.objects.select_for_update().get(pk=entry.pk)
        if entry.status != StockEntryStatusChoices.DRAFT:
            raise ValidationError(f"Only draft entries can be submitted; {entry.entry_no} is {entry.status}")

        StockTransactionManager.validate_entry(entry, list(entry.items.all()))
        doc_type, doc_id, doc_number = StockTransactionManager._reference(entry)

        for item, warehouse, transaction_type, quantity in StockTransactionManager.movements(entry):
            StockTransactionManager.post(
                item_code=item.item_code,
                warehouse=warehouse,
                transaction_type=transaction_type,
                quantity=quantity,
                reference_doc_type=doc_type,
                reference_doc_id=doc_id,
                reference_doc_number=doc_number,
                remarks=entry.remarks or f"{entry.entry_type} {entry.entry_no}",
                user=user,
                material_name=item.material_name,
                material_type=item.material_type,
            )

        entry.status = StockEntryStatusChoices.SUBMITTED
        entry.submitted_at = timezone.now()
        entry.save(update_fields=['status', 'submitted_at', 'updated_at'])
        logger.info(f"Stock entry {entry.entry_no} submitted")
        return entry

    @staticmethod
    @transaction.atomic
    def cancel_entry(entry, user=None):
        """Reverse every movement of a submitted entry"""
        entry = StockEntry.objects.select_for_update().get(pk=entry.pk)
        if entry.status != StockEntryStatusChoices.SUBMITTED:
            raise ValidationError(f"Only submitted entries can be cancelled; {entry.entry_no} is {entry.status}")

        doc_type, doc_id, doc_number = StockTransactionManager._reference(entry)
        for item, warehouse, transaction_type, quantity in StockTransactionManager.movements(entry):
            StockTransactionManager.post(
                item_code=item.item_code,
                warehouse=warehouse,
                transaction_type=REVERSAL[transaction_type],
                quantity=quantity,
                reference_doc_type=doc_type,
                reference_doc_id=doc_id,
                reference_doc_number=doc_number,
                remarks=f"Cancellation of {entry.entry_no}",
                user=user,
            )

        entry.status = StockEntryStatusChoices.CANCELLED
        entry.save(update_fields=['status', 'updated_at'])
        logger.info(f"Stock entry {entry.entry_no} cancelled")
        return entry

    @staticmethod
    def delete_entry(entry):
        if entry.status != StockEntryStatusChoices.DRAFT:
            raise ValidationError(f"Only draft entries can be deleted; {entry.entry_no} is {entry.status}")
        entry_no = entry.entry_no
        entry.delete()
        logger.info(f"Stock entry {entry_no} deleted")

    @staticmethod
    @transaction.atomic
    def create_from_grn(grn, user=None):
        """
        Submitted Material Receipt into the receiving hold for every accepted
        GRN line. Returns None when nothing on the GRN is receivable.
        """
        items = [
            {
                'item_code': grn_item.item_code,
                'material_name': grn_item.material_name,
                'material_type': grn_item.material_type,
                'quantity': grn_item.accepted_qty,
                'uom': grn_item.unit,
                'valuation_rate': grn_item.po_item.unit_rate if grn_item.po_item_id else Decimal('0'),
            }
            for grn_item in grn.items.select_related('po_item')
            if grn_item.accepted_qty > ZERO
            and is_stock_item(grn_item.material_type)
        ]
        if not items:
            logger.info(f"{grn.grn_number}: no accepted stock items, no receipt entry created")
            return None

        return StockTransactionManager.create_entry(
            header={
                'entry_type': StockEntryTypeChoices.MATERIAL_RECEIPT,
                'purpose': f'Receipt against {grn.grn_number}',
                'to_warehouse': StockTransactionManager.receiving_warehouse(),
                'grn': grn,
                'remarks': f'Auto-created from {grn.grn_number} (PO {grn.purchase_order.po_number})',
            },
            items=items,
            user=user,
            submit=True,
        )
