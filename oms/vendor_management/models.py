from django.db import models
from django.conf import settings


class VendorStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    ACTIVE = 'ACTIVE', 'Active'
    INACTIVE = 'INACTIVE', 'Inactive'
    SUSPENDED = 'SUSPENDED', 'Suspended'


class Vendor(models.Model):
    """Vendor supplying order line items."""

    company_name = models.CharField(max_length=200, unique=True)
    vendor_code = models.CharField(max_length=20, unique=True, help_text='Unique vendor identifier')
    contact_person = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)

    # Login of the vendor's own staff; notifications addressed to the vendor go here
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vendor_profile'
    )

    status = models.CharField(max_length=20, choices=VendorStatus.choices, default=VendorStatus.PENDING)
    verified = models.BooleanField(default=False, help_text='Vendor documents have been verified')
    verified_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.company_name} ({self.vendor_code})"

    class Meta:
        ordering = ['company_name']
        indexes = [
            models.Index(fields=['status', 'verified'], name='vendor_status_verified_idx'),
        ]

    @property
    def is_active(self):
        return self.status == VendorStatus.ACTIVE

