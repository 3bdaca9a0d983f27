"""Document persistence."""

from .document_store import DocumentStore, DiskDocumentStore

__all__ = ['DocumentStore', 'DiskDocumentStore']
