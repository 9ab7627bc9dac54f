from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.utils import timezone

from utils.enums import (
    QuotationRequestStatusChoices, VendorQuotationStatusChoices, SalesOrderStatusChoices
)
from utils.numbering import next_document_number

User = get_user_model()


class QuotationRequest(models.Model):
    """
    One quoted item for a client. Items sent together are grouped on read by
    client and creation time; there is no header row.
    """
    client = models.ForeignKey('third_party.Client', on_delete=models.PROTECT, related_name='quotation_requests')
    item_description = models.CharField(max_length=255)
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))]
    )
    unit_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'), editable=False)
    status = models.CharField(
        max_length=15,
        choices=QuotationRequestStatusChoices.choices,
        default=QuotationRequestStatusChoices.DRAFT
    )
    approval_reference = models.CharField(max_length=255, blank=True, help_text="Approval document name or reference")
    approval_document = models.FileField(upload_to='quotation_approvals/', null=True, blank=True)
    remarks = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotation_requests')

    class Meta:
        verbose_name = 'Quotation Request'
        verbose_name_plural = 'Quotation Requests'
        ordering = ['-created_at', 'id']
        indexes = [
            models.Index(fields=['client', 'created_at']),
        ]

    def save(self, *args, **kwargs):
        self.total_amount = (self.quantity or Decimal('0')) * (self.unit_rate or Decimal('0'))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.client.company_name} - {self.item_description} ({self.status})"


class VendorQuotation(models.Model):
    """Quotation asked of a vendor, and the vendor's response document"""
    reference = models.CharField(max_length=100, blank=True)
    vendor = models.ForeignKey('third_party.Vendor', on_delete=models.PROTECT, related_name='quotations')
    purchase_order = models.ForeignKey(
        'procurement.PurchaseOrder',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vendor_quotations'
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    # Legacy rows store 'Sent ' with a trailing space; compared verbatim
    status = models.CharField(
        max_length=20,
        choices=VendorQuotationStatusChoices.choices,
        default=VendorQuotationStatusChoices.DRAFT
    )
    received_document = models.FileField(upload_to='vendor_quotations/', null=True, blank=True)
    received_document_name = models.CharField(max_length=255, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    remarks = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='vendor_quotations')

    class Meta:
        verbose_name = 'Vendor Quotation'
        verbose_name_plural = 'Vendor Quotations'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.vendor.name} - {self.reference or self.pk} ({self.status})"


class SalesOrder(models.Model):
    so_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        help_text="Auto-generated sales order number (SO-YYYYMMDD-NNNN)"
    )
    client = models.ForeignKey('third_party.Client', on_delete=models.PROTECT, related_name='sales_orders')
    quotation_request = models.ForeignKey(
        QuotationRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sales_orders'
    )
    project_name = models.CharField(max_length=200, blank=True)
    order_date = models.DateField(default=timezone.localdate)
    delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=30,
        choices=SalesOrderStatusChoices.choices,
        default=SalesOrderStatusChoices.CREATED
    )
    material_available = models.BooleanField(default=False)
    remarks = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')

    class Meta:
        verbose_name = 'Sales Order'
        verbose_name_plural = 'Sales Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]

    def save(self, *args, **kwargs):
        if not self.so_number:
            self.so_number = next_document_number(SalesOrder, 'so_number', 'SO')
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.so_number} - {self.client.company_name}"
