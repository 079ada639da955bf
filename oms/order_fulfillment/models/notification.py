"""
In-app notification record written by the default notification channel.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone


class NotificationPriority(models.TextChoices):
    URGENT = 'URGENT', 'Urgent'
    NORMAL = 'NORMAL', 'Normal'
    LOW = 'LOW', 'Low'


class Notification(models.Model):
    """A message delivered to one user's inbox."""

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='oms_notifications'
    )
    priority = models.CharField(max_length=10, choices=NotificationPriority.choices,
                                default=NotificationPriority.NORMAL)

    title = models.CharField(max_length=200)
    body = models.TextField()
    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='of_notification_inbox_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.recipient}"

    def mark_as_read(self):
        """Mark notification as read."""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
