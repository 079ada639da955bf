"""
Order model for the order fulfillment workflow.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


class OrderStatus(models.TextChoices):
    """Order status enumeration with workflow states."""
    RECEIVED = 'RECEIVED', 'Received'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    PROCESSING = 'PROCESSING', 'Processing'
    PARTIALLY_FULFILLED = 'PARTIALLY_FULFILLED', 'Partially fulfilled'
    FULFILLED = 'FULFILLED', 'Fulfilled'
    CLOSED = 'CLOSED', 'Closed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class OrderSource(models.TextChoices):
    """How the order entered the system."""
    MANUAL_ENTRY = 'MANUAL_ENTRY', 'Manual entry'
    EXCEL_IMPORT = 'EXCEL_IMPORT', 'Excel import'


class Order(models.Model):
    """
    Buyer-side order split into line items and assigned to vendors.

    ``total_value`` always equals the sum of the item totals; services
    recompute it whenever the items change.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique business identifier of the order"
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.RECEIVED,
        help_text="Current order status in the fulfillment workflow"
    )
    source = models.CharField(
        max_length=20,
        choices=OrderSource.choices,
        default=OrderSource.MANUAL_ENTRY
    )

    total_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Sum of all item totals"
    )

    primary_vendor = models.ForeignKey(
        'vendor_management.Vendor',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='primary_orders',
        help_text="Vendor selected when the order was created or last assigned"
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_orders',
        help_text="User who created the order"
    )

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='of_order_status_idx'),
            models.Index(fields=['primary_vendor', 'status'], name='of_order_vendor_idx'),
        ]

    def __str__(self):
        return f"Order {self.order_number} ({self.status})"

    @property
    def is_editable(self):
        """Items may only be changed before any vendor has acted."""
        return self.status == OrderStatus.RECEIVED

    @property
    def is_terminal(self):
        return self.status in [OrderStatus.CLOSED, OrderStatus.CANCELLED]
