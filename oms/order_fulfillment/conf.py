"""
Settings for the order fulfillment app.

Values are read from the ``OMS`` dict in Django settings, falling back to
the defaults below.
"""

from django.conf import settings
from django.core.signals import setting_changed
from django.utils.module_loading import import_string

DEFAULTS = {
    'VENDOR_DIRECTORY': 'order_fulfillment.adapters.vendor_directory.DatabaseVendorDirectory',
    'NOTIFICATION_CHANNEL': 'order_fulfillment.adapters.notifications.InAppNotificationChannel',
    'FILE_STORE': 'order_fulfillment.adapters.file_store.StorageFileStore',
    'AUDIT_LEDGER': 'order_fulfillment.services.audit.DatabaseAuditLedger',

    # Bounded wait for the assignment confirmation transaction (PostgreSQL only)
    'ASSIGNMENT_LOCK_TIMEOUT_MS': 5000,
    'ASSIGNMENT_STATEMENT_TIMEOUT_MS': 15000,

    'DEFAULT_PAGE_SIZE': 10,
    'MAX_PAGE_SIZE': 100,

    'TICKET_HIGH_PRIORITY_SHORTAGE_PERCENT': 10,
    'PROOF_UPLOAD_DIR': 'dispatch-proofs',
}


class OmsSettings:
    """Lazy accessor for the ``OMS`` settings dict."""

    def __init__(self, defaults=None):
        self.defaults = defaults or DEFAULTS
        self._cached = set()

    @property
    def user_settings(self):
        if not hasattr(self, '_user_settings'):
            self._user_settings = getattr(settings, 'OMS', {})
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid OMS setting: '{attr}'")

        value = self.user_settings.get(attr, self.defaults[attr])
        self._cached.add(attr)
        setattr(self, attr, value)
        return value

    def reload(self):
        for attr in self._cached:
            delattr(self, attr)
        self._cached.clear()
        if hasattr(self, '_user_settings'):
            delattr(self, '_user_settings')

    def build(self, attr):
        """Instantiate the collaborator class configured under ``attr``."""
        return import_string(getattr(self, attr))()


oms_settings = OmsSettings(DEFAULTS)


def reload_oms_settings(*args, **kwargs):
    if kwargs['setting'] == 'OMS':
        oms_settings.reload()


setting_changed.connect(reload_oms_settings)
