"""
Best-effort notification dispatch.

Notifications are queued with ``transaction.on_commit`` so they only go out
once the workflow change is durable, and delivery errors never reach the
caller.
"""

import logging
from functools import partial
from typing import Iterable

from django.db import transaction

from ..adapters.notifications import NotificationChannelInterface, NotificationPayload

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Wraps a notification channel with after-commit, failure-tolerant delivery."""

    def __init__(self, channel: NotificationChannelInterface):
        self.channel = channel

    def to_users_on_commit(self, user_ids: Iterable, payload: NotificationPayload) -> None:
        user_ids = [user_id for user_id in user_ids if user_id is not None]
        if user_ids:
            transaction.on_commit(partial(self.send_to_users, user_ids, payload))

    def to_roles_on_commit(self, roles: Iterable[str], payload: NotificationPayload) -> None:
        transaction.on_commit(partial(self.send_to_roles, list(roles), payload))

    def send_to_users(self, user_ids, payload):
        try:
            result = self.channel.notify_users(user_ids, payload)
        except Exception:
            logger.exception(f"Failed to notify users {user_ids}: {payload.title}")
            return None
        if not result.success:
            logger.warning(f"Notification to users {user_ids} partially failed: {result.results}")
        return result

    def send_to_roles(self, roles, payload):
        try:
            result = self.channel.notify_roles(roles, payload)
        except Exception:
            logger.exception(f"Failed to notify roles {roles}: {payload.title}")
            return None
        if not result.success:
            logger.warning(f"Notification to roles {roles} partially failed: {result.results}")
        return result
