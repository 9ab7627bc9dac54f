from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.utils import timezone

from utils.enums import POStatusChoices, PaymentModeChoices, PaymentStatusChoices
from utils.numbering import next_document_number

User = get_user_model()


class PurchaseOrder(models.Model):
    """
    Purchase order raised on a vendor. Replacement orders for shortages point
    back at the original through `parent_po`.
    """
    po_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        help_text="Auto-generated PO number (PO-YYYYMMDD-NNNN)"
    )
    vendor = models.ForeignKey(
        'third_party.Vendor',
        on_delete=models.PROTECT,
        related_name='purchase_orders'
    )
    order_date = models.DateField(default=timezone.localdate)
    expected_date = models.DateField(null=True, blank=True, help_text="Expected delivery date")
    status = models.CharField(
        max_length=20,
        choices=POStatusChoices.choices,
        default=POStatusChoices.DRAFT
    )
    parent_po = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='replacement_orders',
        help_text="Original PO when this order replaces a shortage"
    )
    sales_order = models.ForeignKey(
        'sales.SalesOrder',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders',
        help_text="Sales order this material is bought for"
    )
    notes = models.TextField(blank=True)

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_purchase_orders')

    class Meta:
        verbose_name = 'Purchase Order'
        verbose_name_plural = 'Purchase Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['vendor', 'status']),
        ]

    def save(self, *args, **kwargs):
        if not self.po_number:
            self.po_number = next_document_number(PurchaseOrder, 'po_number', 'PO')
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.po_number} - {self.vendor.name}"

    @property
    def total_amount(self):
        return sum((item.amount for item in self.items.all()), Decimal('0'))


class PurchaseOrderItem(models.Model):
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    item_code = models.CharField(max_length=50)
    description = models.CharField(max_length=255, blank=True)
    material_name = models.CharField(max_length=200, blank=True)
    material_type = models.CharField(max_length=50, blank=True, help_text="RM, FG, SUB_ASSEMBLY, ...")
    unit = models.CharField(max_length=20, default='NOS')
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))]
    )
    unit_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'), editable=False)

    class Meta:
        verbose_name = 'Purchase Order Item'
        verbose_name_plural = 'Purchase Order Items'
        ordering = ['id']

    def save(self, *args, **kwargs):
        self.amount = (self.quantity or Decimal('0')) * (self.unit_rate or Decimal('0'))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.purchase_order.po_number} / {self.item_code}"


class Payment(models.Model):
    """Vendor payment, optionally against a purchase order"""
    payment_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        help_text="Auto-generated payment number (PAY-YYYYMMDD-NNNN)"
    )
    vendor = models.ForeignKey('third_party.Vendor', on_delete=models.PROTECT, related_name='payments')
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments'
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    payment_date = models.DateField(default=timezone.localdate)
    mode = models.CharField(max_length=20, choices=PaymentModeChoices.choices, default=PaymentModeChoices.BANK_TRANSFER)
    reference_no = models.CharField(max_length=100, blank=True, help_text="UTR / cheque number")
    status = models.CharField(max_length=20, choices=PaymentStatusChoices.choices, default=PaymentStatusChoices.PENDING)
    remarks = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_payments')

    class Meta:
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-payment_date', '-created_at']

    def clean(self):
        if self.purchase_order_id and self.vendor_id and self.purchase_order.vendor_id != self.vendor_id:
            raise ValidationError({'purchase_order': 'Purchase order belongs to a different vendor'})

    def save(self, *args, **kwargs):
        if not self.payment_number:
            self.payment_number = next_document_number(Payment, 'payment_number', 'PAY')
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.payment_number} - {self.amount}"
