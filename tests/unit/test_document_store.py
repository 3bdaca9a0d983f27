"""Unit tests for the disk document store."""

import pytest

from quotemerge.core.exceptions import StorageError
from quotemerge.storage.document_store import DiskDocumentStore


@pytest.fixture
def store(tmp_path):
    with DiskDocumentStore(tmp_path / "documents") as store:
        yield store


def test_save_and_fetch(store):
    doc_id = store.save(b"%PDF-1.7 body", {"quote_number": "Q-1", "kind": "agreement"})
    assert len(doc_id) == 32
    assert store.fetch(doc_id) == b"%PDF-1.7 body"
    assert doc_id in store
    assert len(store) == 1


def test_metadata(store):
    doc_id = store.save(b"12345", {"quote_number": "Q-2"})
    meta = store.metadata(doc_id)
    assert meta["quote_number"] == "Q-2"
    assert meta["size"] == 5
    assert meta["created_at"] > 0


def test_ids_are_unique(store):
    ids = {store.save(b"same bytes") for _ in range(5)}
    assert len(ids) == 5


def test_delete(store):
    doc_id = store.save(b"bytes")
    store.delete(doc_id)
    assert doc_id not in store
    with pytest.raises(StorageError):
        store.fetch(doc_id)


def test_missing_ids(store):
    with pytest.raises(StorageError) as exc_info:
        store.fetch("0" * 32)
    assert exc_info.value.operation == "fetch"
    with pytest.raises(StorageError):
        store.metadata("nope")
    with pytest.raises(StorageError):
        store.delete("nope")


def test_rejects_non_bytes(store):
    with pytest.raises(TypeError):
        store.save("text")


def test_persists_across_instances(tmp_path):
    with DiskDocumentStore(tmp_path / "docs") as first:
        doc_id = first.save(b"kept")
    with DiskDocumentStore(tmp_path / "docs") as second:
        assert second.fetch(doc_id) == b"kept"
        assert list(second) == [doc_id]
        second.clear()
        assert len(second) == 0
