from __future__ import annotations

import threading
from typing import IO, Optional

from loguru import logger

from esdump_client.models import Document
from esdump_client.utils import close_text, dumps_compact, open_text_out

from ..errors import ConfigurationError, RecordWriteError, SinkOpenError
from ..pipeline.types import OUTPUT_FORMATS, Sink


class FileSink(Sink):
    """
    Appends records to a local file (backup path).

    Framing is fixed for the lifetime of the sink:
      - ndjson: one compact `{"_index":..,"_id":..,"_source":{..}}` per line
      - json:   a single JSON array, `[` on open and `]` on close

    `.gz` paths are compressed; `-` writes to stdout. Writes from concurrent
    workers are serialized on one lock; duplicates are written as they come.
    """

    kind = "file"

    def __init__(self, path: str, format: str = "ndjson"):
        if format not in OUTPUT_FORMATS:
            raise ConfigurationError(f"unsupported format: {format}")
        self._path = path
        self._format = format
        self._fh: Optional[IO[str]] = None
        self._lock = threading.Lock()
        self._written = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def format(self) -> str:
        return self._format

    @property
    def written(self) -> int:
        return self._written

    def open(self) -> None:
        try:
            self._fh = open_text_out(self._path)
        except OSError as exc:
            raise SinkOpenError(f"failed to create output file {self._path}: {exc}") from exc
        if self._format == "json":
            self._fh.write("[")
        logger.debug(f"Opened {self._path} for {self._format} output")

    def write(self, record: Document) -> None:
        try:
            line = dumps_compact(record.to_dict())
        except (TypeError, ValueError) as exc:
            raise RecordWriteError(
                f"cannot serialize document {record.id}: {exc}", record_id=record.id
            ) from exc

        with self._lock:
            if self._fh is None:
                raise RecordWriteError(f"{self._path} is not open", record_id=record.id)
            if self._format == "json":
                self._fh.write(("\n" if self._written == 0 else ",\n") + line)
            else:
                self._fh.write(line + "\n")
            self._written += 1

    def close(self) -> None:
        with self._lock:
            fh, self._fh = self._fh, None
            if fh is None:
                return
            try:
                if self._format == "json":
                    fh.write("\n]\n" if self._written else "]\n")
            finally:
                close_text(fh, self._path)
        logger.debug(f"Closed {self._path}: {self._written} records")
