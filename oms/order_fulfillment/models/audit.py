"""
Audit log model for the order fulfillment workflow.
"""

import uuid
from django.db import models
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone


class AuditAction(models.TextChoices):
    """Every state-changing action the workflow records."""
    ORDER_CREATE = 'order:create', 'Order created'
    ORDER_UPDATE = 'order:update', 'Order updated'
    ORDER_DELETE = 'order:delete', 'Order deleted'
    ORDER_VENDOR_ASSIGN = 'order:vendor_assign', 'Vendor assigned to order'
    ORDER_CANCEL = 'order:cancel', 'Order cancelled'
    ORDER_STATUS_UPDATE = 'order:status_update', 'Order status updated'
    ASSIGNMENT_CONFIRMED = 'assignment:confirmed', 'Assignment confirmed'
    ASSIGNMENT_PARTIAL_CONFIRMED = 'assignment:partial_confirmed', 'Assignment partially confirmed'
    ASSIGNMENT_DECLINED = 'assignment:declined', 'Assignment declined'
    DISPATCH_CREATE = 'dispatch:create', 'Dispatch created'
    DISPATCH_PROOF_UPLOAD = 'dispatch:proof_upload', 'Dispatch proof uploaded'
    DISPATCH_STATUS_UPDATE = 'dispatch:status_update', 'Dispatch status updated'
    GRN_CREATED = 'grn:created', 'GRN created'
    GRN_VERIFIED_OK = 'grn:verified_ok', 'GRN verified OK'
    GRN_VERIFIED_MISMATCH = 'grn:verified_mismatch', 'GRN verified with mismatch'
    TICKET_CREATED = 'ticket:created', 'Ticket created'
    TICKET_STATUS_UPDATE = 'ticket:status_update', 'Ticket status updated'


class ImmutableAuditLogError(Exception):
    """Raised on any attempt to change or remove an audit entry."""


class AuditLogQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ImmutableAuditLogError("Audit log entries cannot be updated")

    def delete(self):
        raise ImmutableAuditLogError("Audit log entries cannot be deleted")

    def for_entity(self, entity_type: str, entity_id):
        return self.filter(entity_type=entity_type, entity_id=str(entity_id))


class AuditLog(models.Model):
    """
    Append-only record of every mutating workflow action.

    Entries outlive the entities they describe, so the entity is stored by
    type and id rather than by foreign key.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_entries',
        help_text="User who performed the action; empty for system actions"
    )
    action = models.CharField(max_length=50, choices=AuditAction.choices)

    entity_type = models.CharField(
        max_length=50,
        help_text="Type of entity (Order, Assignment, Dispatch, etc.)"
    )
    entity_id = models.CharField(max_length=64)

    metadata = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        help_text="Snapshot of the change"
    )

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-created_at'], name='of_audit_entity_idx'),
            models.Index(fields=['actor', '-created_at'], name='of_audit_actor_idx'),
            models.Index(fields=['action', '-created_at'], name='of_audit_action_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type} {self.entity_id} by {self.actor_id} at {self.created_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableAuditLogError("Audit log entries cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableAuditLogError("Audit log entries cannot be deleted")
