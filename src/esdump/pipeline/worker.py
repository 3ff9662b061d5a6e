from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from esdump_client.models import Document

from ..metrics.registry import SINK_WRITES_TOTAL, SINK_WRITE_LATENCY
from .channel import DispatchChannel
from .progress import ProgressCounter
from .types import Sink

MAX_RECORDED_ERRORS = 100


@dataclass
class WorkerStats:
    written: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.written + self.failed


class WriteBackWorker:
    """Drains the dispatch channel into a sink, one record at a time.

    A failed write is logged with the record id, counted, and skipped; it never
    stops the worker. The worker exits when the channel is closed and empty, or
    when the run is cancelled.
    """

    def __init__(
        self,
        worker_id: int,
        channel: DispatchChannel[Document],
        sink: Sink,
        progress: ProgressCounter,
        *,
        cancel: Optional[threading.Event] = None,
    ):
        self.worker_id = worker_id
        self._channel = channel
        self._sink = sink
        self._progress = progress
        self._cancel = cancel
        self.stats = WorkerStats()

    def run(self) -> WorkerStats:
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            record = self._channel.get()
            if record is None:
                break
            if self._cancel is not None and self._cancel.is_set():
                break
            self._write_one(record)
        logger.debug(
            f"Worker {self.worker_id} stopped: "
            f"written={self.stats.written} failed={self.stats.failed}"
        )
        return self.stats

    def _write_one(self, record: Document) -> None:
        t0 = time.perf_counter()
        try:
            self._sink.write(record)
        except Exception as exc:
            self.stats.failed += 1
            msg = f"Error writing document {record.id}: {type(exc).__name__}: {exc}"
            if len(self.stats.errors) < MAX_RECORDED_ERRORS:
                self.stats.errors.append(msg)
            logger.warning(msg)
            SINK_WRITES_TOTAL.labels(sink=self._sink.kind, outcome="failure").inc()
        else:
            self.stats.written += 1
            SINK_WRITES_TOTAL.labels(sink=self._sink.kind, outcome="success").inc()
        finally:
            SINK_WRITE_LATENCY.labels(sink=self._sink.kind).observe(time.perf_counter() - t0)
            self._progress.increment()
