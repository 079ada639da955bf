"""
Assignment model linking an order item to the vendor asked to supply it.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class AssignmentStatus(models.TextChoices):
    """Assignment status enumeration."""
    PENDING_CONFIRMATION = 'PENDING_CONFIRMATION', 'Pending confirmation'
    VENDOR_CONFIRMED_FULL = 'VENDOR_CONFIRMED_FULL', 'Confirmed in full'
    VENDOR_CONFIRMED_PARTIAL = 'VENDOR_CONFIRMED_PARTIAL', 'Partially confirmed'
    VENDOR_DECLINED = 'VENDOR_DECLINED', 'Declined'
    INVOICED = 'INVOICED', 'Invoiced'
    DISPATCHED = 'DISPATCHED', 'Dispatched'


CONFIRMED_STATUSES = [
    AssignmentStatus.VENDOR_CONFIRMED_FULL,
    AssignmentStatus.VENDOR_CONFIRMED_PARTIAL,
]


class Assignment(models.Model):
    """
    One vendor's share of one order item.

    Leaves PENDING_CONFIRMATION exactly once. ``confirmed_quantity`` is null
    until the vendor confirms and stays null after a decline.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_item = models.ForeignKey(
        'OrderItem',
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    vendor = models.ForeignKey(
        'vendor_management.Vendor',
        on_delete=models.PROTECT,
        related_name='assignments'
    )

    assigned_quantity = models.PositiveIntegerField()
    confirmed_quantity = models.PositiveIntegerField(null=True, blank=True)

    status = models.CharField(
        max_length=30,
        choices=AssignmentStatus.choices,
        default=AssignmentStatus.PENDING_CONFIRMATION
    )
    vendor_remarks = models.TextField(blank=True)

    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='made_assignments'
    )
    assigned_at = models.DateTimeField(default=timezone.now)
    vendor_action_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-assigned_at']
        constraints = [
            models.UniqueConstraint(fields=['order_item', 'vendor'], name='of_assignment_item_vendor_unique'),
            models.CheckConstraint(
                condition=(
                    models.Q(confirmed_quantity__isnull=True)
                    | models.Q(confirmed_quantity__gt=0, confirmed_quantity__lte=models.F('assigned_quantity'))
                ),
                name='of_assignment_confirmed_within_assigned'
            ),
            models.CheckConstraint(
                condition=(
                    ~models.Q(status__in=['PENDING_CONFIRMATION', 'VENDOR_DECLINED'])
                    | models.Q(confirmed_quantity__isnull=True)
                ),
                name='of_assignment_unconfirmed_has_no_quantity'
            ),
        ]
        indexes = [
            models.Index(fields=['vendor', 'status'], name='of_assignment_vendor_idx'),
        ]

    def __str__(self):
        return f"Assignment {self.id} - {self.vendor_id} ({self.status})"

    @property
    def is_pending(self):
        return self.status == AssignmentStatus.PENDING_CONFIRMATION
