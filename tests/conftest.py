"""
Pytest configuration and fixtures for esdump.

Provides an in-memory, thread-safe stand-in for the cluster client so the
pipeline can be exercised end to end without a live cluster.
"""

import threading
from itertools import count as _counter

import pytest
from loguru import logger

from esdump_client.models import Document


class FakeStore:
    """
    In-memory cluster: indices of {id: source}, scroll cursors over snapshots.

    Failure injection:
        fail_on: names of calls that raise RuntimeError ("count", "search", ...)
        reject_ids: document ids `upsert` refuses
    """

    def __init__(self):
        self.indices: dict[str, dict[str, dict]] = {}
        self.mappings: dict[str, dict] = {}
        self.settings: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self.reject_ids: set[str] = set()
        self.count_override = None
        self.closed = False
        self._scrolls: dict[str, dict] = {}
        self._ids = _counter(1)
        self._lock = threading.Lock()

    # ---------- helpers ----------

    def add(self, index: str, n: int, start: int = 1) -> None:
        docs = self.indices.setdefault(index, {})
        for i in range(start, start + n):
            docs[str(i)] = {"n": i, "name": f"doc-{i}"}

    def docs(self, index: str) -> dict[str, dict]:
        return self.indices.get(index, {})

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def _record(self, name: str, *args) -> None:
        with self._lock:
            self.calls.append((name, *args))
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def _page(self, cursor: str) -> list[Document]:
        state = self._scrolls[cursor]
        start = state["offset"]
        batch = state["hits"][start : start + state["size"]]
        state["offset"] = start + len(batch)
        return batch

    # ---------- client contract ----------

    def count(self, index: str) -> int:
        self._record("count", index)
        if self.count_override is not None:
            return self.count_override
        return len(self.docs(index))

    def search(self, index: str, size: int):
        self._record("search", index, size)
        hits = [
            Document(index=index, id=doc_id, source=source)
            for doc_id, source in self.docs(index).items()
        ]
        cursor = f"scroll-{next(self._ids)}"
        self._scrolls[cursor] = {"hits": hits, "offset": 0, "size": size}
        return cursor, self._page(cursor)

    def continue_scroll(self, cursor: str):
        self._record("continue_scroll", cursor)
        return cursor, self._page(cursor)

    def clear_scroll(self, cursor: str) -> None:
        self._record("clear_scroll", cursor)
        self._scrolls.pop(cursor, None)

    def upsert(self, index: str, doc_id, source: dict) -> None:
        self._record("upsert", index, doc_id)
        if doc_id in self.reject_ids:
            raise RuntimeError(f"document {doc_id} rejected")
        with self._lock:
            docs = self.indices.setdefault(index, {})
            docs[doc_id or f"auto-{next(self._ids)}"] = dict(source)

    def get_mapping(self, index: str) -> dict:
        self._record("get_mapping", index)
        return {index: {"mappings": self.mappings.get(index, {})}}

    def put_mapping(self, index: str, mapping: dict) -> None:
        self._record("put_mapping", index)
        self.mappings[index] = mapping

    def get_settings(self, index: str) -> dict:
        self._record("get_settings", index)
        return {index: {"settings": self.settings.get(index, {})}}

    def put_settings(self, index: str, settings: dict) -> None:
        self._record("put_settings", index)
        self.settings[index] = settings

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    """Fresh in-memory cluster."""
    return FakeStore()


@pytest.fixture
def make_doc():
    """Factory for documents in index 'src'."""

    def _make(doc_id, index: str = "src", **source):
        return Document(index=index, id=doc_id, source=source or {"id": doc_id})

    return _make


@pytest.fixture
def log_messages():
    """Capture loguru output for assertions."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
