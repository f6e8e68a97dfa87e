"""
core.domain.storage — Blob store for complaint and resolution images.

The lifecycle engine only ever sees ``StoredBlob(url, blob_id)`` values.
Bytes go through ``BlobStore``, which sits on top of Django's storage API
(``django.core.files.storage``), so the backing service is chosen purely
through the ``STORAGES`` setting (local filesystem in development,
in-memory storage in tests, any django-storages backend in production).

Contract
--------
* ``upload(file, folder)`` → ``StoredBlob``.  Raises ``DependencyFailed``
  when the backend is unreachable; callers decide whether that is fatal.
* ``delete(blob_id)`` → ``bool``.  Best-effort, never raises.
"""

from __future__ import annotations

import logging
import posixpath
import uuid
from dataclasses import dataclass
from typing import IO

from django.core.files.base import File
from django.core.files.storage import Storage, default_storage

from core.domain.exceptions import DependencyFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Reference to an uploaded blob."""

    url: str
    blob_id: str

    def as_dict(self) -> dict[str, str]:
        return {"url": self.url, "blob_id": self.blob_id}


class BlobStore:
    """Thin adapter over a Django ``Storage`` backend."""

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage if storage is not None else default_storage

    def upload(self, file: IO | File, folder: str) -> StoredBlob:
        """
        Persist ``file`` under ``folder`` with a collision-free name.

        Raises:
            DependencyFailed: The storage backend rejected the write.
        """
        original_name = getattr(file, "name", "") or "upload"
        extension = posixpath.splitext(original_name)[1].lower()
        target = posixpath.join(folder, f"{uuid.uuid4().hex}{extension}")
        try:
            blob_id = self.storage.save(target, file)
            url = self.storage.url(blob_id)
        except Exception as exc:
            logger.error("Blob upload to '%s' failed: %s", folder, exc, exc_info=True)
            raise DependencyFailed("Image storage is currently unavailable.") from exc

        logger.info("Uploaded blob %s", blob_id)
        return StoredBlob(url=url, blob_id=blob_id)

    def upload_many(self, files: list, folder: str) -> list[StoredBlob]:
        """
        Upload every file or none of them.

        If one upload fails, the blobs already written are released before
        the ``DependencyFailed`` is re-raised.
        """
        uploaded: list[StoredBlob] = []
        try:
            for file in files:
                uploaded.append(self.upload(file, folder))
        except DependencyFailed:
            self.release(uploaded)
            raise
        return uploaded

    def delete(self, blob_id: str) -> bool:
        """Delete a blob; return ``False`` instead of raising on failure."""
        if not blob_id:
            return True
        try:
            self.storage.delete(blob_id)
        except Exception as exc:
            logger.warning("Blob delete failed for %s: %s", blob_id, exc)
            return False
        logger.info("Deleted blob %s", blob_id)
        return True

    def release(self, blobs: list[StoredBlob]) -> None:
        """Best-effort cleanup of blobs that never got attached to a complaint."""
        for blob in blobs:
            self.delete(blob.blob_id)


def get_blob_store() -> BlobStore:
    """Return a ``BlobStore`` bound to the configured default storage."""
    return BlobStore()
