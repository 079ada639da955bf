"""
Dispatch models: logistics handoff of confirmed assignments.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class DispatchStatus(models.TextChoices):
    """Dispatch status enumeration."""
    PENDING = 'PENDING', 'Pending'
    PROCESSING = 'PROCESSING', 'Processing'
    DISPATCHED = 'DISPATCHED', 'Dispatched'
    IN_TRANSIT = 'IN_TRANSIT', 'In transit'
    DELIVERED = 'DELIVERED', 'Delivered'
    FAILED = 'FAILED', 'Failed'


DEFAULT_AWB_NUMBER = 'LOCAL-PORTER'
DEFAULT_LOGISTICS_PARTNER = 'Local Porter'


class Dispatch(models.Model):
    """A vendor's shipment of one or more confirmed assignments."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(
        'vendor_management.Vendor',
        on_delete=models.PROTECT,
        related_name='dispatches'
    )

    awb_number = models.CharField(max_length=100, default=DEFAULT_AWB_NUMBER, help_text="Air waybill number")
    logistics_partner = models.CharField(max_length=100, default=DEFAULT_LOGISTICS_PARTNER)
    dispatch_date = models.DateTimeField(default=timezone.now)
    estimated_delivery_date = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=DispatchStatus.choices,
        default=DispatchStatus.DISPATCHED
    )
    remarks = models.TextField(blank=True, max_length=1000)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_dispatches'
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'dispatches'
        indexes = [
            models.Index(fields=['vendor', 'status'], name='of_dispatch_vendor_idx'),
            models.Index(fields=['awb_number'], name='of_dispatch_awb_idx'),
        ]

    def __str__(self):
        return f"Dispatch {self.awb_number} - {self.status}"

    @property
    def is_active(self):
        return self.status != DispatchStatus.FAILED

    @property
    def total_quantity(self):
        return sum(item.dispatched_quantity for item in self.items.all())


class DispatchItem(models.Model):
    """Quantity of one assignment carried by a dispatch."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dispatch = models.ForeignKey(Dispatch, on_delete=models.CASCADE, related_name='items')
    assignment = models.ForeignKey(
        'Assignment',
        on_delete=models.PROTECT,
        related_name='dispatch_items'
    )
    dispatched_quantity = models.PositiveIntegerField()

    class Meta:
        ordering = ['dispatch', 'id']
        constraints = [
            models.UniqueConstraint(fields=['dispatch', 'assignment'], name='of_dispatch_item_unique'),
            models.CheckConstraint(condition=models.Q(dispatched_quantity__gt=0),
                                   name='of_dispatch_item_quantity_positive'),
        ]

    def __str__(self):
        return f"{self.assignment_id} x {self.dispatched_quantity}"


class Attachment(models.Model):
    """Proof-of-dispatch file held by the external file store."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dispatch = models.ForeignKey(Dispatch, on_delete=models.CASCADE, related_name='attachments')

    file_name = models.CharField(max_length=255)
    url = models.CharField(max_length=1000, help_text="Location returned by the file store")
    file_size = models.PositiveIntegerField(default=0)
    mime_type = models.CharField(max_length=100, blank=True)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='uploaded_attachments'
    )
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return self.file_name
