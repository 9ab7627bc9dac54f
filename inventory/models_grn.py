"""
Goods Receipt Note (GRN) models
Received / accepted / rejected quantities per PO line and their distribution
from the receiving hold into stock warehouses
"""
from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.utils import timezone

from utils.enums import GRNStatusChoices, GRNItemStatusChoices, AllocationStatusChoices
from utils.numbering import padded_reference
from utils.state_machine import TransitionTable

User = get_user_model()


GRN_WORKFLOW = TransitionTable(
    name='GRN',
    states=GRNStatusChoices.values,
    events=['RECEIVE', 'INSPECT', 'APPROVE', 'REJECT'],
    transitions={
        GRNStatusChoices.PENDING: {
            'RECEIVE': GRNStatusChoices.RECEIVED,
        },
        GRNStatusChoices.RECEIVED: {
            'RECEIVE': GRNStatusChoices.RECEIVED,
            'INSPECT': GRNStatusChoices.INSPECTED,
        },
        GRNStatusChoices.INSPECTED: {
            'INSPECT': GRNStatusChoices.INSPECTED,
            'RECEIVE': GRNStatusChoices.RECEIVED,
            'APPROVE': GRNStatusChoices.APPROVED,
            'REJECT': GRNStatusChoices.REJECTED,
        },
        GRNStatusChoices.APPROVED: {},
        GRNStatusChoices.REJECTED: {},
    },
)


class GRN(models.Model):
    grn_number = models.CharField(
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        editable=False,
        help_text="GRN-NNNN, derived from the id"
    )
    purchase_order = models.ForeignKey(
        'procurement.PurchaseOrder',
        on_delete=models.PROTECT,
        related_name='grns'
    )
    grn_date = models.DateField(default=timezone.localdate)
    status = models.CharField(
        max_length=15,
        choices=GRNStatusChoices.choices,
        default=GRNStatusChoices.PENDING
    )
    notes = models.TextField(blank=True)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='received_grns')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'GRN'
        verbose_name_plural = 'GRNs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.grn_number:
            self.grn_number = padded_reference('GRN', self.pk)
            GRN.objects.filter(pk=self.pk).update(grn_number=self.grn_number)

    def __str__(self):
        return f"{self.grn_number} ({self.get_status_display()})"


class GRNItem(models.Model):
    """
    One received PO line. `version` is bumped on every allocation so
    concurrent allocations against the same line cannot both succeed.
    """
    grn = models.ForeignKey(GRN, on_delete=models.CASCADE, related_name='items')
    po_item = models.ForeignKey(
        'procurement.PurchaseOrderItem',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='grn_items'
    )
    item_code = models.CharField(max_length=50)
    material_name = models.CharField(max_length=200, blank=True)
    material_type = models.CharField(max_length=50, blank=True)
    unit = models.CharField(max_length=20, default='NOS')

    ordered_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    received_qty = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    accepted_qty = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    rejected_qty = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    shortage_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    overage_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    status = models.CharField(
        max_length=20,
        choices=GRNItemStatusChoices.choices,
        default=GRNItemStatusChoices.PENDING
    )

    allocated_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    allocation_status = models.CharField(
        max_length=20,
        choices=AllocationStatusChoices.choices,
        default=AllocationStatusChoices.PENDING
    )
    version = models.PositiveIntegerField(default=0)
    remarks = models.TextField(blank=True)

    class Meta:
        verbose_name = 'GRN Item'
        verbose_name_plural = 'GRN Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.grn.grn_number} / {self.item_code}"

    @property
    def pending_allocation_qty(self):
        return self.accepted_qty - self.allocated_qty


class WarehouseAllocation(models.Model):
    """Audit row for one allocation action out of the receiving hold"""
    grn_item = models.ForeignKey(GRNItem, on_delete=models.PROTECT, related_name='allocations')
    from_warehouse = models.ForeignKey(
        'inventory.Warehouse', on_delete=models.PROTECT, related_name='allocations_out'
    )
    to_warehouse = models.ForeignKey(
        'inventory.Warehouse', on_delete=models.PROTECT, related_name='allocations_in'
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    remarks = models.TextField(blank=True)
    allocated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='warehouse_allocations')
    allocated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Warehouse Allocation'
        verbose_name_plural = 'Warehouse Allocations'
        ordering = ['-allocated_at', '-id']

    def __str__(self):
        return f"{self.grn_item} -> {self.to_warehouse.code}: {self.quantity}"
