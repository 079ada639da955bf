"""
Shared wiring for workflow services.
"""

from ..conf import oms_settings
from ..adapters.notifications import NotificationChannelInterface
from .audit import AuditLedger
from .notifications import NotificationDispatcher


class WorkflowService:
    """
    Base class for services that audit their changes and send notifications.

    Collaborators are passed in by the caller; anything omitted is built
    from the ``OMS`` settings.
    """

    def __init__(self, audit: AuditLedger = None, notifier: NotificationChannelInterface = None):
        self.audit = audit or oms_settings.build('AUDIT_LEDGER')
        self.notifications = NotificationDispatcher(notifier or oms_settings.build('NOTIFICATION_CHANNEL'))
