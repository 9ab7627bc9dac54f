from django.db import models
from django.utils.translation import gettext_lazy as _


# ============================================================================
# MASTER DATA CHOICES
# ============================================================================

class WarehouseTypeChoices(models.TextChoices):
    HOLD = 'HOLD', _('Receiving Hold')
    RM = 'RM', _('Raw Material')
    WIP = 'WIP', _('Work In Progress')
    FG = 'FG', _('Finished Goods')
    SUB = 'SUB', _('Sub Assembly')
    REJECT = 'REJECT', _('Rejected Material')


class WarehouseStatusChoices(models.TextChoices):
    ACTIVE = 'ACTIVE', _('Active')
    INACTIVE = 'INACTIVE', _('Inactive')


# ============================================================================
# PROCUREMENT CHOICES
# ============================================================================

class POStatusChoices(models.TextChoices):
    DRAFT = 'DRAFT', _('Draft')
    SENT = 'SENT', _('Sent')
    # Legacy rows carry a trailing space; kept verbatim so exact matches keep working
    SENT_LEGACY = 'Sent ', _('Sent (legacy)')
    APPROVED = 'APPROVED', _('Approved')
    APPROVED_LEGACY = 'Approved ', _('Approved (legacy)')
    PARTIALLY_RECEIVED = 'PARTIALLY_RECEIVED', _('Partially Received')
    COMPLETED = 'COMPLETED', _('Completed')
    CANCELLED = 'CANCELLED', _('Cancelled')


class POItemBalanceStatus(models.TextChoices):
    OPEN = 'OPEN', _('Open')
    CLOSED = 'CLOSED', _('Closed')
    EXCESS = 'EXCESS', _('Excess')


class PaymentModeChoices(models.TextChoices):
    BANK_TRANSFER = 'BANK_TRANSFER', _('Bank Transfer')
    CHEQUE = 'CHEQUE', _('Cheque')
    CASH = 'CASH', _('Cash')
    UPI = 'UPI', _('UPI')


class PaymentStatusChoices(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    COMPLETED = 'COMPLETED', _('Completed')
    CANCELLED = 'CANCELLED', _('Cancelled')


# ============================================================================
# GOODS RECEIPT & QUALITY CHOICES
# ============================================================================

class GRNStatusChoices(models.TextChoices):
    PENDING = 'PENDING', _('Pending Receipt')
    RECEIVED = 'RECEIVED', _('Received')
    INSPECTED = 'INSPECTED', _('Inspected')
    APPROVED = 'APPROVED', _('Approved')
    REJECTED = 'REJECTED', _('Rejected')


class GRNItemStatusChoices(models.TextChoices):
    PENDING = 'PENDING', _('Pending Inspection')
    AVAILABLE = 'AVAILABLE', _('Available')
    SHORTAGE = 'SHORTAGE', _('Shortage')
    OVERAGE = 'OVERAGE', _('Overage')
    EXCESS_ACCEPTED = 'EXCESS_ACCEPTED', _('Excess Accepted')
    REJECTED = 'REJECTED', _('Rejected')


class AllocationStatusChoices(models.TextChoices):
    PENDING = 'PENDING', _('Pending Allocation')
    PARTIAL = 'PARTIAL', _('Partially Allocated')
    FULLY_ALLOCATED = 'FULLY_ALLOCATED', _('Fully Allocated')


class QCStatusChoices(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    IN_PROGRESS = 'IN_PROGRESS', _('In Progress')
    PASSED = 'PASSED', _('Passed')
    FAILED = 'FAILED', _('Failed')
    ACCEPTED = 'ACCEPTED', _('Accepted')
    SHORTAGE = 'SHORTAGE', _('Accepted with Shortage')
    OVERAGE = 'OVERAGE', _('Accepted with Overage')


class QCLineStatusChoices(models.TextChoices):
    AVAILABLE = 'AVAILABLE', _('Available')
    SHORTAGE = 'SHORTAGE', _('Shortage')
    OVERAGE = 'OVERAGE', _('Overage')


# ============================================================================
# STOCK CHOICES
# ============================================================================

class StockEntryTypeChoices(models.TextChoices):
    MATERIAL_RECEIPT = 'Material Receipt', _('Material Receipt')
    MATERIAL_ISSUE = 'Material Issue', _('Material Issue')
    MATERIAL_TRANSFER = 'Material Transfer', _('Material Transfer')
    MATERIAL_ADJUSTMENT = 'Material Adjustment', _('Material Adjustment')


class StockEntryStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    SUBMITTED = 'submitted', _('Submitted')
    CANCELLED = 'cancelled', _('Cancelled')


class LedgerTransactionTypeChoices(models.TextChoices):
    IN = 'IN', _('Inward')
    OUT = 'OUT', _('Outward')
    ADJUSTMENT = 'ADJUSTMENT', _('Adjustment')


class ReferenceDocTypeChoices(models.TextChoices):
    GRN = 'GRN', _('Goods Receipt Note')
    STOCK_ENTRY = 'STOCK_ENTRY', _('Stock Entry')
    WAREHOUSE_ALLOCATION = 'WAREHOUSE_ALLOCATION', _('Warehouse Allocation')


# ============================================================================
# SALES CHOICES
# ============================================================================

class QuotationRequestStatusChoices(models.TextChoices):
    DRAFT = 'DRAFT', _('Draft')
    SENT = 'SENT', _('Sent')
    APPROVAL = 'APPROVAL', _('Sent for Approval')
    APPROVED = 'APPROVED', _('Approved')
    PARTIAL = 'PARTIAL', _('Partially Approved')
    COMPLETED = 'COMPLETED', _('Completed')
    REJECTED = 'REJECTED', _('Rejected')


class VendorQuotationStatusChoices(models.TextChoices):
    DRAFT = 'DRAFT', _('Draft')
    SENT_LEGACY = 'Sent ', _('Sent')
    EMAIL_RECEIVED = 'EMAIL_RECEIVED', _('Email Received')
    RECEIVED = 'RECEIVED', _('Received')
    APPROVED = 'APPROVED', _('Approved')
    REJECTED = 'REJECTED', _('Rejected')


class SalesOrderStatusChoices(models.TextChoices):
    CREATED = 'CREATED', _('Created')
    DESIGN_IN_REVIEW = 'DESIGN_IN_REVIEW', _('Design In Review')
    DESIGN_APPROVED = 'DESIGN_APPROVED', _('Design Approved')
    PROCUREMENT_IN_PROGRESS = 'PROCUREMENT_IN_PROGRESS', _('Procurement In Progress')
    MATERIAL_READY = 'MATERIAL_READY', _('Material Ready')
    IN_PRODUCTION = 'IN_PRODUCTION', _('In Production')
    PRODUCTION_COMPLETED = 'PRODUCTION_COMPLETED', _('Production Completed')
    DISPATCHED = 'DISPATCHED', _('Dispatched')
    CANCELLED = 'CANCELLED', _('Cancelled')
