"""
Document persistence for generated agreements and uploaded templates.

The merge engine never touches storage; callers save what it returns.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol, Union

import diskcache

from quotemerge.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """What a caller needs from a document store."""

    def save(self, file_bytes: bytes, metadata: Optional[Dict[str, Any]] = None) -> str:
        ...

    def fetch(self, doc_id: str) -> bytes:
        ...

    def delete(self, doc_id: str) -> None:
        ...


class DiskDocumentStore:
    """
    Document store on a local diskcache directory.

    Each document is kept under its id as ``{"bytes": ..., "metadata": ...}``.
    Ids are random UUID hex strings.
    """

    def __init__(self, directory: Union[str, Path] = ".cache/documents", ttl: Optional[int] = None):
        """
        Initialize store.

        Args:
            directory: Directory for the cache files
            ttl: Seconds before a document expires; None keeps documents until deleted
        """
        self.directory = Path(directory)
        self.ttl = ttl
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cache = diskcache.Cache(str(self.directory))
        except OSError as e:
            raise StorageError(f"Cannot open document store at {self.directory}: {e}", operation="init") from e
        logger.debug(f"Document store at {self.directory} (TTL: {ttl})")

    def save(self, file_bytes: bytes, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Store ``file_bytes`` and return the new document id."""
        if not isinstance(file_bytes, (bytes, bytearray)):
            raise TypeError("file_bytes must be bytes")
        doc_id = uuid.uuid4().hex
        record = {
            "bytes": bytes(file_bytes),
            "metadata": dict(metadata or {}),
            "size": len(file_bytes),
            "created_at": time.time(),
        }
        try:
            self._cache.set(doc_id, record, expire=self.ttl)
        except OSError as e:
            raise StorageError(f"Failed to save document: {e}", doc_id=doc_id, operation="save") from e
        logger.info(f"Saved document {doc_id} ({len(file_bytes)} bytes)")
        return doc_id

    def _record(self, doc_id: str, operation: str) -> Dict[str, Any]:
        record = self._cache.get(doc_id)
        if record is None:
            raise StorageError(f"Document not found: {doc_id}", doc_id=doc_id, operation=operation)
        return record

    def fetch(self, doc_id: str) -> bytes:
        return self._record(doc_id, "fetch")["bytes"]

    def metadata(self, doc_id: str) -> Dict[str, Any]:
        record = self._record(doc_id, "metadata")
        return dict(record["metadata"], size=record["size"], created_at=record["created_at"])

    def delete(self, doc_id: str) -> None:
        if not self._cache.delete(doc_id):
            raise StorageError(f"Document not found: {doc_id}", doc_id=doc_id, operation="delete")
        logger.info(f"Deleted document {doc_id}")

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[str]:
        return iter(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
