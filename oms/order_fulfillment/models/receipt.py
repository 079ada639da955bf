"""
Goods receipt models: physical verification of a dispatch and the tickets
raised when it does not match.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class GRNStatus(models.TextChoices):
    PENDING_VERIFICATION = 'PENDING_VERIFICATION', 'Pending verification'
    VERIFIED_OK = 'VERIFIED_OK', 'Verified OK'
    VERIFIED_MISMATCH = 'VERIFIED_MISMATCH', 'Verified with mismatch'
    PARTIALLY_VERIFIED = 'PARTIALLY_VERIFIED', 'Partially verified'


class GRNItemStatus(models.TextChoices):
    VERIFIED_OK = 'VERIFIED_OK', 'Verified OK'
    SHORTAGE_REPORTED = 'SHORTAGE_REPORTED', 'Shortage reported'
    EXCESS_RECEIVED = 'EXCESS_RECEIVED', 'Excess received'
    DAMAGE_REPORTED = 'DAMAGE_REPORTED', 'Damage reported'


class TicketStatus(models.TextChoices):
    OPEN = 'OPEN', 'Open'
    IN_PROGRESS = 'IN_PROGRESS', 'In progress'
    RESOLVED = 'RESOLVED', 'Resolved'
    CLOSED = 'CLOSED', 'Closed'


class TicketPriority(models.TextChoices):
    LOW = 'LOW', 'Low'
    MEDIUM = 'MEDIUM', 'Medium'
    HIGH = 'HIGH', 'High'
    URGENT = 'URGENT', 'Urgent'


class GoodsReceiptNote(models.Model):
    """Record of what physically arrived for one dispatch."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    grn_number = models.CharField(max_length=30, unique=True)
    dispatch = models.OneToOneField(
        'Dispatch',
        on_delete=models.PROTECT,
        related_name='goods_receipt'
    )

    status = models.CharField(
        max_length=25,
        choices=GRNStatus.choices,
        default=GRNStatus.PENDING_VERIFICATION
    )
    operator_remarks = models.TextField(blank=True)

    received_at = models.DateTimeField(default=timezone.now)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='verified_grns'
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'goods receipt note'
        indexes = [
            models.Index(fields=['status', '-created_at'], name='of_grn_status_idx'),
        ]

    def __str__(self):
        return f"{self.grn_number} ({self.status})"


class GoodsReceiptItem(models.Model):
    """Received quantity of one dispatch item."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    grn = models.ForeignKey(GoodsReceiptNote, on_delete=models.CASCADE, related_name='items')
    dispatch_item = models.OneToOneField(
        'DispatchItem',
        on_delete=models.PROTECT,
        related_name='receipt_item'
    )
    assignment = models.ForeignKey(
        'Assignment',
        on_delete=models.PROTECT,
        related_name='receipt_items'
    )

    dispatched_quantity = models.PositiveIntegerField()
    received_quantity = models.PositiveIntegerField()
    discrepancy_quantity = models.IntegerField(
        help_text="received - dispatched; negative is a shortage, positive an excess"
    )

    damage_reported = models.BooleanField(default=False)
    damage_description = models.TextField(blank=True)
    item_remarks = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=GRNItemStatus.choices)

    class Meta:
        ordering = ['grn', 'id']

    def __str__(self):
        return f"{self.grn_id}: {self.received_quantity}/{self.dispatched_quantity}"


class Ticket(models.Model):
    """Escalation raised automatically when a goods receipt finds a mismatch."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket_number = models.CharField(max_length=20, unique=True)
    grn = models.OneToOneField(
        GoodsReceiptNote,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='ticket'
    )

    title = models.CharField(max_length=255)
    description = models.TextField()
    priority = models.CharField(max_length=10, choices=TicketPriority.choices, default=TicketPriority.MEDIUM)
    status = models.CharField(max_length=15, choices=TicketStatus.choices, default=TicketStatus.OPEN)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_tickets'
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority'], name='of_ticket_status_idx'),
        ]

    def __str__(self):
        return f"{self.ticket_number} - {self.title}"
