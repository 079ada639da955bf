"""
Adapters for the collaborators the workflow depends on but does not own.
"""

from .vendor_directory import (
    VendorRecord, VendorDirectoryInterface, DatabaseVendorDirectory, InMemoryVendorDirectory
)
from .notifications import (
    NotificationPayload, NotificationResult, NotificationChannelInterface,
    InAppNotificationChannel, InMemoryNotificationChannel
)
from .file_store import FileStoreInterface, StorageFileStore, InMemoryFileStore

__all__ = [
    'VendorRecord', 'VendorDirectoryInterface', 'DatabaseVendorDirectory', 'InMemoryVendorDirectory',
    'NotificationPayload', 'NotificationResult', 'NotificationChannelInterface',
    'InAppNotificationChannel', 'InMemoryNotificationChannel',
    'FileStoreInterface', 'StorageFileStore', 'InMemoryFileStore',
]
