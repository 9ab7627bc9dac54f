from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, Payment


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 1
    readonly_fields = ['amount']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'vendor', 'order_date', 'expected_date', 'status', 'parent_po', 'created_at']
    list_filter = ['status', 'order_date']
    search_fields = ['po_number', 'vendor__name']
    readonly_fields = ['po_number', 'created_at', 'updated_at']
    inlines = [PurchaseOrderItemInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_number', 'vendor', 'purchase_order', 'amount', 'payment_date', 'mode', 'status']
    list_filter = ['status', 'mode', 'payment_date']
    search_fields = ['payment_number', 'reference_no', 'vendor__name']
    readonly_fields = ['payment_number', 'created_at', 'updated_at']
