from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.utils import timezone

from utils.enums import (
    WarehouseTypeChoices, WarehouseStatusChoices, StockEntryTypeChoices,
    StockEntryStatusChoices, LedgerTransactionTypeChoices, ReferenceDocTypeChoices
)
from utils.numbering import next_document_number

User = get_user_model()


class Warehouse(models.Model):
    code = models.CharField(max_length=20, unique=True, help_text="Warehouse code e.g. RM-HOLD, RM, WIP, FG")
    name = models.CharField(max_length=100)
    warehouse_type = models.CharField(
        max_length=10,
        choices=WarehouseTypeChoices.choices,
        default=WarehouseTypeChoices.RM
    )
    location = models.CharField(max_length=200, blank=True)
    capacity = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=WarehouseStatusChoices.choices,
        default=WarehouseStatusChoices.ACTIVE
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Warehouse'
        verbose_name_plural = 'Warehouses'
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.name}"

    @staticmethod
    def infer_type(code):
        """RM-HOLD -> HOLD, WIP-2 -> WIP, anything unknown -> RM"""
        code = (code or '').upper()
        if code.endswith('-HOLD') or code == 'HOLD':
            return WarehouseTypeChoices.HOLD
        prefix = code.split('-')[0]
        if prefix in WarehouseTypeChoices.values:
            return prefix
        return WarehouseTypeChoices.RM


class StockLedgerEntry(models.Model):
    """
    Append-only record of every stock movement. `balance_after` is the
    warehouse balance for the item immediately after this movement.
    """
    item_code = models.CharField(max_length=50)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='ledger_entries')
    transaction_type = models.CharField(max_length=12, choices=LedgerTransactionTypeChoices.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    reference_doc_type = models.CharField(max_length=25, choices=ReferenceDocTypeChoices.choices)
    reference_doc_id = models.PositiveBigIntegerField(null=True, blank=True)
    reference_doc_number = models.CharField(max_length=50, blank=True)
    balance_after = models.DecimalField(max_digits=14, decimal_places=3)
    remarks = models.TextField(blank=True)
    transaction_date = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_ledger_entries')

    class Meta:
        verbose_name = 'Stock Ledger Entry'
        verbose_name_plural = 'Stock Ledger Entries'
        ordering = ['-transaction_date', '-id']
        indexes = [
            models.Index(fields=['item_code', 'warehouse']),
            models.Index(fields=['reference_doc_type', 'reference_doc_id']),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Stock ledger entries cannot be modified")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.transaction_type} {self.quantity} {self.item_code} @ {self.warehouse.code}"


class StockBalance(models.Model):
    item_code = models.CharField(max_length=50)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='stock_balances')
    material_name = models.CharField(max_length=200, blank=True)
    material_type = models.CharField(max_length=50, blank=True)
    current_balance = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0'))
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Stock Balance'
        verbose_name_plural = 'Stock Balances'
        ordering = ['item_code', 'warehouse__code']
        constraints = [
            models.UniqueConstraint(fields=['item_code', 'warehouse'], name='unique_stock_balance_per_warehouse'),
        ]

    def __str__(self):
        return f"{self.item_code} @ {self.warehouse.code}: {self.current_balance}"


class StockEntry(models.Model):
    """
    Material Receipt / Issue / Transfer / Adjustment document.
    Only submitted entries move stock.
    """
    entry_no = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        help_text="Auto-generated entry number (MA-YYYYMM-NNNNNN)"
    )
    entry_type = models.CharField(max_length=25, choices=StockEntryTypeChoices.choices)
    purpose = models.CharField(max_length=200, blank=True)
    entry_date = models.DateField(default=timezone.localdate)
    from_warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, null=True, blank=True, related_name='outgoing_stock_entries'
    )
    to_warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, null=True, blank=True, related_name='incoming_stock_entries'
    )
    grn = models.ForeignKey(
        'inventory.GRN', on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_entries'
    )
    remarks = models.TextField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=StockEntryStatusChoices.choices,
        default=StockEntryStatusChoices.DRAFT
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_stock_entries')
    submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Stock Entry'
        verbose_name_plural = 'Stock Entries'
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        if not self.entry_no:
            self.entry_no = next_document_number(StockEntry, 'entry_no', 'MA', date_format='%Y%m', width=6)
        super().save(*args, **kwargs)

    def clean(self):
        errors = {}
        if self.entry_type == StockEntryTypeChoices.MATERIAL_RECEIPT and not self.to_warehouse_id:
            errors['to_warehouse'] = 'Target warehouse is required for Material Receipt'
        elif self.entry_type == StockEntryTypeChoices.MATERIAL_ISSUE and not self.from_warehouse_id:
            errors['from_warehouse'] = 'Source warehouse is required for Material Issue'
        elif self.entry_type == StockEntryTypeChoices.MATERIAL_TRANSFER:
            if not self.from_warehouse_id or not self.to_warehouse_id:
                errors['__all__'] = 'Both source and target warehouses are required for Material Transfer'
            elif self.from_warehouse_id == self.to_warehouse_id:
                errors['to_warehouse'] = 'Source and target warehouses must differ'
        elif self.entry_type == StockEntryTypeChoices.MATERIAL_ADJUSTMENT and not (
            self.to_warehouse_id or self.from_warehouse_id
        ):
            errors['to_warehouse'] = 'A warehouse is required for Material Adjustment'
        if errors:
            raise ValidationError(errors)

    @property
    def adjustment_warehouse(self):
        return self.to_warehouse or self.from_warehouse

    def __str__(self):
        return f"{self.entry_no} ({self.entry_type})"


class StockEntryItem(models.Model):
    stock_entry = models.ForeignKey(StockEntry, on_delete=models.CASCADE, related_name='items')
    item_code = models.CharField(max_length=50)
    material_name = models.CharField(max_length=200, blank=True)
    material_type = models.CharField(max_length=50, blank=True)
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        help_text="Negative quantities are only meaningful for adjustments"
    )
    uom = models.CharField(max_length=20, default='NOS')
    batch_no = models.CharField(max_length=50, blank=True)
    valuation_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'), editable=False)

    class Meta:
        ordering = ['id']

    def save(self, *args, **kwargs):
        self.amount = (self.quantity or Decimal('0')) * (self.valuation_rate or Decimal('0'))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.stock_entry.entry_no} / {self.item_code} x {self.quantity}"


from .models_grn import GRN, GRNItem, WarehouseAllocation  # noqa: E402,F401
