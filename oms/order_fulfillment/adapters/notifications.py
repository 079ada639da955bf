"""
Notification channel adapter.

Delivery is a fire-and-forget side channel: callers never depend on the
result for correctness.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    priority: str = 'NORMAL'
    data: Dict[str, str] = field(default_factory=dict)


@dataclass
class NotificationResult:
    success: bool
    results: List[Dict[str, Any]] = field(default_factory=list)


class NotificationChannelInterface(ABC):
    """Contract for delivering notifications to users or whole roles."""

    @abstractmethod
    def notify_users(self, user_ids: Iterable, payload: NotificationPayload) -> NotificationResult:
        """
        Deliver a notification to specific users.

        Args:
            user_ids: Primary keys of the recipients
            payload: Title, body, priority and data of the message

        Returns:
            NotificationResult with one entry per recipient
        """
        pass

    @abstractmethod
    def notify_roles(self, roles: Iterable[str], payload: NotificationPayload) -> NotificationResult:
        """Deliver a notification to every active user holding any of ``roles``."""
        pass


class InAppNotificationChannel(NotificationChannelInterface):
    """Stores notifications in the users' in-app inbox."""

    def notify_users(self, user_ids, payload):
        from ..models import Notification

        results = []
        for user_id in dict.fromkeys(user_ids):
            if user_id is None:
                continue
            notification = Notification.objects.create(
                recipient_id=user_id,
                priority=payload.priority,
                title=payload.title,
                body=payload.body,
                data=payload.data,
            )
            results.append({'user_id': user_id, 'success': True, 'notification_id': notification.pk})

        return NotificationResult(success=all(r['success'] for r in results), results=results)

    def notify_roles(self, roles, payload):
        from django.contrib.auth import get_user_model
        from django.db.models import Q
        from ..context import Role

        roles = list(roles)
        query = Q(groups__name__in=roles)
        if Role.ADMIN in roles:
            query |= Q(is_superuser=True)

        user_ids = (
            get_user_model().objects.filter(query, is_active=True)
            .values_list('pk', flat=True).distinct()
        )
        result = self.notify_users(list(user_ids), payload)
        logger.info(f"Notified {len(result.results)} users in roles {', '.join(roles)}: {payload.title}")
        return result


class InMemoryNotificationChannel(NotificationChannelInterface):
    """Records every notification instead of delivering it. Used in tests."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def notify_users(self, user_ids, payload):
        if self.fail:
            raise ConnectionError("Notification channel unavailable")
        user_ids = [user_id for user_id in user_ids if user_id is not None]
        self.sent.append({'users': user_ids, 'roles': [], 'payload': payload})
        return NotificationResult(success=True, results=[{'user_id': u, 'success': True} for u in user_ids])

    def notify_roles(self, roles, payload):
        if self.fail:
            raise ConnectionError("Notification channel unavailable")
        roles = list(roles)
        self.sent.append({'users': [], 'roles': roles, 'payload': payload})
        return NotificationResult(success=True, results=[{'role': r, 'success': True} for r in roles])

    def sent_to_roles(self, *roles):
        return [entry for entry in self.sent if set(roles) <= set(entry['roles'])]

    def sent_to_user(self, user_id):
        return [entry for entry in self.sent if user_id in entry['users']]
