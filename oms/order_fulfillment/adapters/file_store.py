"""
File store adapter for dispatch proofs.

The store returns an opaque location which is persisted verbatim.
"""

import uuid
from abc import ABC, abstractmethod


class FileStoreInterface(ABC):

    @abstractmethod
    def upload(self, content: bytes, file_name: str, content_type: str = '') -> str:
        """
        Store a file.

        Args:
            content: Raw file bytes
            file_name: Original file name, kept for the stored key
            content_type: MIME type reported by the client

        Returns:
            URL of the stored file
        """
        pass


class StorageFileStore(FileStoreInterface):
    """Saves files through Django's configured default storage."""

    def __init__(self, storage=None, directory=None):
        from django.core.files.storage import default_storage
        from ..conf import oms_settings

        self.storage = storage or default_storage
        self.directory = directory or oms_settings.PROOF_UPLOAD_DIR

    def upload(self, content, file_name, content_type=''):
        from django.core.files.base import ContentFile

        key = f"{self.directory}/{uuid.uuid4().hex}-{file_name}"
        stored_name = self.storage.save(key, ContentFile(content))
        return self.storage.url(stored_name)


class InMemoryFileStore(FileStoreInterface):
    """Keeps uploads in a dict. Used in tests."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.files = {}

    def upload(self, content, file_name, content_type=''):
        if self.fail:
            raise IOError("File store unavailable")
        url = f"memory://proofs/{len(self.files) + 1}/{file_name}"
        self.files[url] = {'content': content, 'content_type': content_type}
        return url
