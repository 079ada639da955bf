"""
Read-only views over the audit ledger and the notification inbox.
"""

from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from ..models import AuditLog, Notification
from ..serializers.audit_serializers import AuditLogSerializer, NotificationSerializer
from ..permissions import IsAdminOrOps
from .base import success_response


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only ViewSet for audit entries."""
    queryset = AuditLog.objects.select_related('actor').all()
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminOrOps]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['entity_type', 'entity_id', 'actor', 'action']
    search_fields = ['entity_id', 'action']
    ordering_fields = ['created_at', 'action']
    ordering = ['-created_at']


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """The requesting user's in-app notifications."""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['is_read', 'priority']

    def get_queryset(self):
        return Notification.objects.filter(recipient=self.request.user).order_by('-created_at')

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        """Mark notification as read."""
        notification = self.get_object()
        notification.mark_as_read()
        return success_response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        """Mark all notifications as read."""
        updated = Notification.objects.filter(
            recipient=request.user,
            is_read=False
        ).update(is_read=True, read_at=timezone.now())
        return success_response({'updated': updated})
