from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal, Optional, Protocol, runtime_checkable

from esdump_client.models import Document

OutputFormat = Literal["ndjson", "json"]
OUTPUT_FORMATS: tuple[str, ...] = ("ndjson", "json")


@runtime_checkable
class StoreClient(Protocol):
    """Blocking calls the pipeline makes against a cluster."""

    def count(self, index: str) -> int: ...

    def search(self, index: str, size: int) -> tuple[Optional[str], list[Document]]: ...

    def continue_scroll(self, cursor: str) -> tuple[Optional[str], list[Document]]: ...

    def clear_scroll(self, cursor: str) -> None: ...

    def upsert(self, index: str, doc_id: Optional[str], source: dict) -> None: ...


class Sink(ABC):
    """Destination that durably applies one record.

    `write` is called concurrently by every worker of the pool; sinks that
    share a resource across calls must serialize access themselves.
    """

    kind: str = "sink"

    def open(self) -> None:
        """Acquire resources; called once before the first write."""

    def close(self) -> None:
        """Release resources; called once after the last write."""

    @abstractmethod
    def write(self, record: Document) -> None: ...

    def __enter__(self) -> "Sink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
