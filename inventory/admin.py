from django.contrib import admin
from django.utils.html import format_html
from .models import (
    Warehouse, StockLedgerEntry, StockBalance, StockEntry, StockEntryItem,
    GRN, GRNItem, WarehouseAllocation
)


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'warehouse_type', 'location', 'capacity', 'status')
    list_filter = ('warehouse_type', 'status')
    search_fields = ('code', 'name', 'location')
    ordering = ('code',)


class GRNItemInline(admin.TabularInline):
    model = GRNItem
    extra = 0
    fields = (
        'item_code', 'ordered_qty', 'received_qty', 'accepted_qty', 'rejected_qty',
        'shortage_qty', 'overage_qty', 'status', 'allocated_qty', 'allocation_status'
    )
    readonly_fields = ('allocated_qty', 'allocation_status')


@admin.register(GRN)
class GRNAdmin(admin.ModelAdmin):
    list_display = ('grn_number', 'purchase_order', 'grn_date', 'status_badge', 'received_by', 'created_at')
    list_filter = ('status', 'grn_date')
    search_fields = ('grn_number', 'purchase_order__po_number')
    readonly_fields = ('grn_number', 'created_at', 'updated_at')
    inlines = [GRNItemInline]

    def status_badge(self, obj):
        colors = {
            'PENDING': '#6c757d',
            'RECEIVED': '#17a2b8',
            'INSPECTED': '#ffc107',
            'APPROVED': '#28a745',
            'REJECTED': '#dc3545',
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, '#000'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'


@admin.register(WarehouseAllocation)
class WarehouseAllocationAdmin(admin.ModelAdmin):
    list_display = ('grn_item', 'from_warehouse', 'to_warehouse', 'quantity', 'allocated_by', 'allocated_at')
    list_filter = ('to_warehouse', 'allocated_at')
    search_fields = ('grn_item__item_code', 'grn_item__grn__grn_number')
    readonly_fields = ('allocated_at',)


class StockEntryItemInline(admin.TabularInline):
    model = StockEntryItem
    extra = 0
    readonly_fields = ('amount',)


@admin.register(StockEntry)
class StockEntryAdmin(admin.ModelAdmin):
    list_display = ('entry_no', 'entry_type', 'entry_date', 'from_warehouse', 'to_warehouse', 'status', 'grn')
    list_filter = ('entry_type', 'status', 'entry_date')
    search_fields = ('entry_no', 'purpose', 'items__item_code')
    readonly_fields = ('entry_no', 'status', 'submitted_at', 'created_at', 'updated_at')
    inlines = [StockEntryItemInline]


@admin.register(StockLedgerEntry)
class StockLedgerEntryAdmin(admin.ModelAdmin):
    list_display = (
        'transaction_date', 'item_code', 'warehouse', 'transaction_type', 'quantity',
        'balance_after', 'reference_doc_type', 'reference_doc_number'
    )
    list_filter = ('transaction_type', 'reference_doc_type', 'warehouse')
    search_fields = ('item_code', 'reference_doc_number')
    ordering = ('-transaction_date', '-id')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockBalance)
class StockBalanceAdmin(admin.ModelAdmin):
    list_display = ('item_code', 'warehouse', 'material_name', 'current_balance', 'last_updated')
    list_filter = ('warehouse',)
    search_fields = ('item_code', 'material_name')
    readonly_fields = ('last_updated',)
