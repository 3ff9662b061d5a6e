"""
Extractors turn a paginated source into a bounded stream of records.

The extractor is the single producer of a run: it decides when the stream
ends (exhaustion, limit, fatal error, cancellation) and closes the dispatch
channel exactly once when it stops.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from itertools import islice
from typing import IO, Any, Iterator, Optional

from loguru import logger
from pydantic import ValidationError

from esdump_client.models import Document
from esdump_client.utils import close_binary_in, iter_ndjson, open_binary_in

from ..errors import ExtractionError, TransferCancelled
from ..metrics.registry import RECORDS_EXTRACTED_TOTAL
from .channel import DispatchChannel
from .types import StoreClient

Batch = list[Document]


class Extractor(ABC):
    """Template for page-at-a-time sources."""

    kind: str = "source"
    enqueued: int = 0

    def count(self) -> Optional[int]:
        """Total records available, or None when the source cannot tell."""
        return None

    @abstractmethod
    def open(self, page_size: int) -> tuple[Any, Batch]:
        """Fetch the first page; returns (cursor, batch)."""

    @abstractmethod
    def advance(self, cursor: Any) -> tuple[Any, Batch]:
        """Fetch the next page with the previous cursor."""

    def release(self, cursor: Any) -> None:
        """Free whatever the cursor holds on to."""

    @abstractmethod
    def describe(self) -> str: ...

    def run(
        self,
        channel: DispatchChannel[Document],
        *,
        page_size: int,
        limit: int = 0,
        total: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """Enqueue records until exhaustion or `limit`; returns the number enqueued.

        An empty page always ends the stream. A short page ends it too, unless
        `total` (the source count) says records are still unread.

        Raises ExtractionError when a page cannot be fetched and
        TransferCancelled when `cancel` is set. The channel is closed in every
        case.
        """
        enqueued = 0
        read = 0
        cursor: Any = None
        try:
            try:
                cursor, batch = self.open(page_size)
            except Exception as exc:
                raise ExtractionError(f"failed to read {self.describe()}: {exc}") from exc
            logger.debug(f"Opened {self.describe()}: first page of {len(batch)} records")

            while batch:
                read += len(batch)
                page_enqueued = 0
                for record in batch:
                    if limit and enqueued >= limit:
                        break
                    if cancel is not None and cancel.is_set():
                        raise TransferCancelled("extraction cancelled")
                    channel.put(record)
                    enqueued += 1
                    page_enqueued += 1
                RECORDS_EXTRACTED_TOTAL.labels(source=self.kind).inc(page_enqueued)

                if limit and enqueued >= limit:
                    logger.debug(f"Limit of {limit} records reached")
                    break
                if cursor is None:
                    break
                if len(batch) < page_size and (total is None or read >= total):
                    # short page with the count fully read: skip the empty-page round trip
                    break
                if cancel is not None and cancel.is_set():
                    raise TransferCancelled("extraction cancelled")

                try:
                    cursor, batch = self.advance(cursor)
                except Exception as exc:
                    raise ExtractionError(
                        f"failed to continue {self.describe()} after {enqueued} records: {exc}",
                        enqueued=enqueued,
                    ) from exc

            logger.debug(f"Extraction from {self.describe()} finished: {enqueued} records")
            return enqueued
        finally:
            self.enqueued = enqueued
            channel.close()
            if cursor is not None:
                self._release(cursor)

    def _release(self, cursor: Any) -> None:
        try:
            self.release(cursor)
        except Exception as exc:
            logger.warning(f"Could not release cursor for {self.describe()}: {exc}")


class CursorExtractor(Extractor):
    """Scroll reader over one cluster index."""

    kind = "cluster"

    def __init__(self, client: StoreClient, index: str):
        self._client = client
        self._index = index

    @property
    def index(self) -> str:
        return self._index

    def describe(self) -> str:
        return f"index '{self._index}'"

    def count(self) -> Optional[int]:
        return self._client.count(self._index)

    def open(self, page_size: int) -> tuple[Optional[str], Batch]:
        return self._client.search(self._index, page_size)

    def advance(self, cursor: str) -> tuple[Optional[str], Batch]:
        return self._client.continue_scroll(cursor)

    def release(self, cursor: str) -> None:
        self._client.clear_scroll(cursor)


class _FileCursor:
    def __init__(self, fh: IO[bytes], records: Iterator[Document]):
        self.fh = fh
        self.records = records


class FileExtractor(Extractor):
    """Line-delimited backup reader (restore path).

    Lines that are not valid JSON, or not a valid document, are logged and
    skipped; only an unreadable file is fatal.
    """

    kind = "file"

    def __init__(self, path: str):
        self._path = path
        self.skipped = 0

    def describe(self) -> str:
        return f"file '{self._path}'"

    def open(self, page_size: int) -> tuple[_FileCursor, Batch]:
        self._page_size = page_size
        fh = open_binary_in(self._path)
        cursor = _FileCursor(fh, self._documents(fh))
        try:
            return cursor, self._page(cursor)
        except Exception:
            close_binary_in(fh, self._path)
            raise

    def advance(self, cursor: _FileCursor) -> tuple[_FileCursor, Batch]:
        return cursor, self._page(cursor)

    def release(self, cursor: _FileCursor) -> None:
        close_binary_in(cursor.fh, self._path)

    def _page(self, cursor: _FileCursor) -> Batch:
        return list(islice(cursor.records, self._page_size))

    def _documents(self, fh: IO[bytes]) -> Iterator[Document]:
        for obj in iter_ndjson(fh, on_skip=self._on_skip):
            try:
                yield Document.model_validate(obj)
            except ValidationError as exc:
                self.skipped += 1
                logger.warning(
                    f"Skipping malformed document (_id={obj.get('_id')!r}) "
                    f"in {self._path}: {exc.error_count()} validation error(s)"
                )

    def _on_skip(self, lineno: int, exc: Exception) -> None:
        self.skipped += 1
