from __future__ import annotations

from typing import Optional

from esdump_client.models import Document

from ..errors import RecordWriteError
from ..pipeline.types import Sink, StoreClient


class ClusterSink(Sink):
    """Upserts each record into a destination index.

    Without a configured index every record goes back to its own `_index`.
    """

    kind = "cluster"

    def __init__(self, client: StoreClient, index: Optional[str] = None):
        self._client = client
        self._index = index or None

    @property
    def index(self) -> Optional[str]:
        return self._index

    def write(self, record: Document) -> None:
        index = self._index or record.index
        if not index:
            raise RecordWriteError("output index cannot be empty", record_id=record.id)
        try:
            self._client.upsert(index, record.id, record.source)
        except Exception as exc:
            raise RecordWriteError(
                f"indexing into {index} failed: {exc}", record_id=record.id
            ) from exc
