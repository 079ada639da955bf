"""
Serializers for the audit ledger and the in-app notification inbox.
"""

from rest_framework import serializers

from ..models import AuditLog, Notification


class AuditLogSerializer(serializers.ModelSerializer):
    actor_name = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'actor', 'actor_name', 'action', 'entity_type', 'entity_id',
            'metadata', 'ip_address', 'user_agent', 'created_at'
        ]
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'priority', 'title', 'body', 'data', 'is_read', 'read_at', 'created_at']
        read_only_fields = fields
