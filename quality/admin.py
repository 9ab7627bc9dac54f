from django.contrib import admin
from django.utils.html import format_html
from .models import QCInspection, QCInspectionItem


class QCInspectionItemInline(admin.TabularInline):
    model = QCInspectionItem
    extra = 0
    fields = (
        'item_code', 'ordered_qty', 'received_qty', 'accepted_qty', 'rejected_qty',
        'line_status', 'shortage_qty', 'overage_qty'
    )
    readonly_fields = fields


@admin.register(QCInspection)
class QCInspectionAdmin(admin.ModelAdmin):
    list_display = ('grn', 'inspection_date', 'status_badge', 'inspected_by', 'updated_at')
    list_filter = ('status', 'inspection_date')
    search_fields = ('grn__grn_number', 'grn__purchase_order__po_number')
    readonly_fields = ('status', 'created_at', 'updated_at')
    inlines = [QCInspectionItemInline]

    def status_badge(self, obj):
        colors = {
            'PENDING': '#6c757d',
            'IN_PROGRESS': '#ffc107',
            'PASSED': '#17a2b8',
            'FAILED': '#dc3545',
            'ACCEPTED': '#28a745',
            'SHORTAGE': '#fd7e14',
            'OVERAGE': '#6f42c1',
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, '#000'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'
