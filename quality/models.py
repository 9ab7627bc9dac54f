from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.utils import timezone

from utils.enums import QCStatusChoices, QCLineStatusChoices
from utils.state_machine import TransitionTable

User = get_user_model()


QC_WORKFLOW = TransitionTable(
    name='QC inspection',
    states=QCStatusChoices.values,
    events=[
        'START', 'RESULTS_MATCH', 'RESULTS_DISCREPANT', 'FAIL',
        'ACCEPT', 'ACCEPT_SHORTAGE', 'ACCEPT_OVERAGE', 'GRN_UPDATED',
    ],
    transitions={
        QCStatusChoices.PENDING: {
            'START': QCStatusChoices.IN_PROGRESS,
            'RESULTS_MATCH': QCStatusChoices.PASSED,
            'RESULTS_DISCREPANT': QCStatusChoices.IN_PROGRESS,
            'FAIL': QCStatusChoices.FAILED,
        },
        QCStatusChoices.IN_PROGRESS: {
            'RESULTS_MATCH': QCStatusChoices.PASSED,
            'RESULTS_DISCREPANT': QCStatusChoices.IN_PROGRESS,
            'FAIL': QCStatusChoices.FAILED,
            'ACCEPT_SHORTAGE': QCStatusChoices.SHORTAGE,
            'ACCEPT_OVERAGE': QCStatusChoices.OVERAGE,
            'GRN_UPDATED': QCStatusChoices.IN_PROGRESS,
        },
        QCStatusChoices.PASSED: {
            'RESULTS_MATCH': QCStatusChoices.PASSED,
            'RESULTS_DISCREPANT': QCStatusChoices.IN_PROGRESS,
            'FAIL': QCStatusChoices.FAILED,
            'ACCEPT': QCStatusChoices.ACCEPTED,
            'GRN_UPDATED': QCStatusChoices.IN_PROGRESS,
        },
        QCStatusChoices.FAILED: {
            'START': QCStatusChoices.IN_PROGRESS,
            'GRN_UPDATED': QCStatusChoices.IN_PROGRESS,
        },
        QCStatusChoices.ACCEPTED: {},
        QCStatusChoices.SHORTAGE: {},
        QCStatusChoices.OVERAGE: {},
    },
)


class QCInspection(models.Model):
    """
    Quality inspection of one GRN
    """
    grn = models.OneToOneField('inventory.GRN', on_delete=models.CASCADE, related_name='qc_inspection')
    inspection_date = models.DateField(default=timezone.localdate)
    status = models.CharField(
        max_length=15,
        choices=QCStatusChoices.choices,
        default=QCStatusChoices.PENDING
    )
    defects = models.TextField(blank=True)
    remarks = models.TextField(blank=True)
    inspected_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='qc_inspections')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'QC Inspection'
        verbose_name_plural = 'QC Inspections'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"QC {self.grn.grn_number} - {self.get_status_display()}"


class QCInspectionItem(models.Model):
    inspection = models.ForeignKey(QCInspection, on_delete=models.CASCADE, related_name='items')
    grn_item = models.ForeignKey('inventory.GRNItem', on_delete=models.CASCADE, related_name='qc_items')
    item_code = models.CharField(max_length=50)

    ordered_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    received_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    accepted_qty = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    rejected_qty = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    line_status = models.CharField(
        max_length=15,
        choices=QCLineStatusChoices.choices,
        default=QCLineStatusChoices.AVAILABLE
    )
    shortage_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    overage_qty = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    remarks = models.TextField(blank=True)

    class Meta:
        verbose_name = 'QC Inspection Item'
        verbose_name_plural = 'QC Inspection Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.inspection} / {self.item_code}"
