from django.contrib import admin
from .models import QuotationRequest, VendorQuotation, SalesOrder


@admin.register(QuotationRequest)
class QuotationRequestAdmin(admin.ModelAdmin):
    list_display = ('client', 'item_description', 'quantity', 'unit_rate', 'total_amount', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('item_description', 'client__company_name', 'approval_reference')
    readonly_fields = ('total_amount', 'updated_at')


@admin.register(VendorQuotation)
class VendorQuotationAdmin(admin.ModelAdmin):
    list_display = ('reference', 'vendor', 'purchase_order', 'total_amount', 'status', 'received_at')
    list_filter = ('status',)
    search_fields = ('reference', 'vendor__name')
    readonly_fields = ('received_at', 'created_at', 'updated_at')


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ('so_number', 'client', 'project_name', 'order_date', 'status', 'material_available')
    list_filter = ('status', 'material_available')
    search_fields = ('so_number', 'project_name', 'client__company_name')
    readonly_fields = ('so_number', 'created_at', 'updated_at')
