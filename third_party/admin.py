from django.contrib import admin
from .models import Vendor, Client


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['vendor_code', 'name', 'gst_no', 'contact_person', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'vendor_code', 'gst_no', 'contact_person']
    ordering = ['name']
    readonly_fields = ['vendor_code', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'vendor_code', 'is_active')
        }),
        ('Contact Information', {
            'fields': ('contact_person', 'email', 'phone', 'address'),
            'classes': ('collapse',)
        }),
        ('Legal Information', {
            'fields': ('gst_no',),
            'classes': ('collapse',)
        }),
        ('Audit Information', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
            'description': 'System generated information'
        }),
    )

    actions = ['make_active', 'make_inactive']

    def make_active(self, request, queryset):
        """Bulk action to activate vendors"""
        updated = queryset.update(is_active=True)
        self.message_user(request, f'{updated} vendors were successfully marked as active.')
    make_active.short_description = "Mark selected vendors as active"

    def make_inactive(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f'{updated} vendors were successfully marked as inactive.')
    make_inactive.short_description = "Mark selected vendors as inactive"


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['company_code', 'company_name', 'gst_no', 'contact_person', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['company_name', 'company_code', 'gst_no', 'contact_person']
    ordering = ['company_name']
    readonly_fields = ['company_code', 'created_at', 'updated_at']
