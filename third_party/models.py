from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import RegexValidator

User = get_user_model()


gst_validator = RegexValidator(
    regex=r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$',
    message='Enter a valid GST number (15 characters in format: 22AAAAA0000A1Z5)'
)

phone_validator = RegexValidator(
    regex=r'^\+?1?\d{9,15}$',
    message='Enter a valid contact number (9-15 digits)'
)


class Vendor(models.Model):
    """
    Supplier of raw material, bought-out parts and services
    """
    name = models.CharField(max_length=200, help_text="Vendor company name")
    vendor_code = models.CharField(
        max_length=20,
        unique=True,
        blank=True,
        editable=False,
        help_text="Auto-generated vendor code (V_001, V_002, etc.)"
    )
    gst_no = models.CharField(
        max_length=15,
        validators=[gst_validator],
        unique=True,
        blank=True,
        null=True,
        help_text="15-digit GST number"
    )
    address = models.TextField(blank=True, help_text="Complete vendor address")
    contact_person = models.CharField(max_length=100, blank=True, help_text="Primary contact person name")
    email = models.EmailField(blank=True, null=True, help_text="Vendor email address")
    phone = models.CharField(
        max_length=17,
        validators=[phone_validator],
        blank=True,
        help_text="Contact phone number"
    )
    is_active = models.BooleanField(default=True, help_text="Is this vendor currently active?")

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_vendors')

    class Meta:
        verbose_name = 'Vendor'
        verbose_name_plural = 'Vendors'
        ordering = ['name']

    def save(self, *args, **kwargs):
        if not self.vendor_code:
            self.vendor_code = _next_party_code(Vendor, 'vendor_code', 'V')
        if self.gst_no:
            self.gst_no = self.gst_no.upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.vendor_code} - {self.name}"


class Client(models.Model):
    """
    Customer company that raises quotation requests and sales orders
    """
    company_name = models.CharField(max_length=200, unique=True, help_text="Client company name")
    company_code = models.CharField(
        max_length=20,
        unique=True,
        blank=True,
        editable=False,
        help_text="Auto-generated client code (C_001, C_002, etc.)"
    )
    gst_no = models.CharField(
        max_length=15,
        validators=[gst_validator],
        unique=True,
        blank=True,
        null=True,
        help_text="15-digit GST number"
    )
    address = models.TextField(blank=True, help_text="Complete client address")
    contact_person = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=17, validators=[phone_validator], blank=True)
    is_active = models.BooleanField(default=True, help_text="Is this client currently active?")

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_clients')

    class Meta:
        verbose_name = 'Client'
        verbose_name_plural = 'Clients'
        ordering = ['company_name']

    def save(self, *args, **kwargs):
        if not self.company_code:
            self.company_code = _next_party_code(Client, 'company_code', 'C')
        if self.gst_no:
            self.gst_no = self.gst_no.upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.company_code} - {self.company_name}"


def _next_party_code(model, field, prefix):
    # C_001, C_002, ... ; codes that do not parse restart the sequence at 1
    last_code = model.objects.filter(
        **{f'{field}__startswith': f'{prefix}_'}
    ).order_by(f'-{field}').values_list(field, flat=True).first()

    next_number = 1
    if last_code:
        try:
            next_number = int(last_code.split('_')[1]) + 1
        except (IndexError, ValueError):
            next_number = 1
    return f'{prefix}_{next_number:03d}'
