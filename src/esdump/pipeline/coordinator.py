from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from loguru import logger

from ..errors import (
    CountError,
    ExtractionError,
    SinkOpenError,
    TransferCancelled,
    TransferError,
)
from ..metrics.registry import RUNS_TOTAL
from .channel import DispatchChannel
from .extractor import Extractor
from .job import TransferJob
from .progress import ProgressCounter
from .worker import MAX_RECORDED_ERRORS, WriteBackWorker


class RunState(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    EXTRACTING = "extracting"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TransferResult:
    """
    Outcome of one pipeline run.

    Attributes:
        state: Terminal state (done, failed or cancelled)
        total: Source count as fetched before extraction (estimate), if known
        enqueued: Records handed to the workers
        written: Records the sink accepted
        failed: Records the sink rejected (logged and skipped)
        errors: First per-record error messages
        duration_seconds: Wall time of the run
        error: Terminal error of a failed run
    """

    state: RunState
    total: Optional[int] = None
    enqueued: int = 0
    written: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    error: Optional[BaseException] = None

    @property
    def attempted(self) -> int:
        return self.written + self.failed

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE

    def raise_for_state(self) -> None:
        """Re-raise the terminal error of a failed or cancelled run."""
        if self.state == RunState.FAILED:
            if self.error is not None:
                raise self.error
            raise TransferError("transfer failed")
        if self.state == RunState.CANCELLED:
            raise TransferCancelled("transfer cancelled")

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "total": self.total,
            "enqueued": self.enqueued,
            "attempted": self.attempted,
            "written": self.written,
            "failed": self.failed,
            "duration_seconds": round(self.duration_seconds, 2),
            "error": str(self.error) if self.error else None,
            "errors": self.errors[:10],
        }


class PipelineCoordinator:
    """
    Wires extractor -> dispatch channel -> write-back workers -> sink.

    Example:
        job = TransferJob(source_index="logs", destination=FileSink("logs.ndjson"))
        coord = PipelineCoordinator(CursorExtractor(client, "logs"), job)
        result = coord.run()
        result.raise_for_state()
    """

    def __init__(
        self,
        extractor: Extractor,
        job: TransferJob,
        *,
        progress: Optional[ProgressCounter] = None,
        coord_id: str = "esdump",
    ):
        self._extractor = extractor
        self._job = job
        self._progress = progress or ProgressCounter()
        self._coord_id = coord_id
        self._state = RunState.IDLE
        self._cancel = threading.Event()
        self._channel: Optional[DispatchChannel] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def progress(self) -> ProgressCounter:
        return self._progress

    def cancel(self) -> None:
        """Stop extraction and write-back at their next suspension point."""
        if not self._cancel.is_set():
            logger.info(f"[{self._coord_id}] Cancellation requested")
        self._cancel.set()
        if self._channel is not None:
            self._channel.cancel()

    def run(self) -> TransferResult:
        if self._state != RunState.IDLE:
            raise TransferError(f"coordinator already ran (state={self._state.value})")

        t0 = time.monotonic()
        job = self._job
        result = TransferResult(state=RunState.IDLE)

        # --- counting ---
        self._set_state(RunState.COUNTING)
        try:
            total = self._extractor.count()
        except Exception as exc:
            return self._finish(
                result,
                RunState.FAILED,
                t0,
                CountError(f"failed to count {self._extractor.describe()}: {exc}"),
            )
        result.total = total
        page_size = self._effective_page_size(total)
        self._progress.total = self._expected(total)
        if total is not None:
            logger.info(f"[{self._coord_id}] {total} records in {self._extractor.describe()}")

        # --- open destination ---
        sink = job.destination
        try:
            sink.open()
        except Exception as exc:
            err = exc
            if not isinstance(err, SinkOpenError):
                err = SinkOpenError(f"failed to open destination: {exc}")
            return self._finish(result, RunState.FAILED, t0, err)

        channel: DispatchChannel = DispatchChannel(job.channel_capacity)
        self._channel = channel
        if self._cancel.is_set():
            channel.cancel()
        workers = [
            WriteBackWorker(i, channel, sink, self._progress, cancel=self._cancel)
            for i in range(job.concurrency)
        ]

        error: Optional[BaseException] = None
        try:
            with ThreadPoolExecutor(
                max_workers=job.concurrency + 1, thread_name_prefix=self._coord_id
            ) as pool:
                # workers subscribe before the first record is produced
                worker_futures = [pool.submit(w.run) for w in workers]

                self._set_state(RunState.EXTRACTING)
                extraction = pool.submit(
                    self._extractor.run,
                    channel,
                    page_size=page_size,
                    limit=job.limit,
                    total=total,
                    cancel=self._cancel,
                )
                error = self._join_extraction(extraction, channel)

                self._set_state(RunState.DRAINING)
                self._wait_interruptible(worker_futures)
                for f in worker_futures:
                    f.result()
        finally:
            try:
                sink.close()
            except Exception as exc:
                logger.error(f"[{self._coord_id}] Failed to close destination: {exc}")
                if error is None:
                    error = TransferError(f"failed to close destination: {exc}")

        result.enqueued = self._extractor.enqueued
        for w in workers:
            result.written += w.stats.written
            result.failed += w.stats.failed
            room = MAX_RECORDED_ERRORS - len(result.errors)
            if room > 0:
                result.errors.extend(w.stats.errors[:room])

        if self._cancel.is_set():
            state = RunState.CANCELLED
        elif error is not None:
            state = RunState.FAILED
        else:
            state = RunState.DONE
        return self._finish(result, state, t0, error)

    # ---------- internals ----------

    def _effective_page_size(self, total: Optional[int]) -> int:
        page_size = self._job.page_size
        if self._job.limit and total is not None:
            # count is an estimate: it shapes the first request, it never caps the read
            page_size = max(1, min(page_size, total))
        return page_size

    def _expected(self, total: Optional[int]) -> Optional[int]:
        limit = self._job.limit
        if total is None:
            return limit or None
        return min(limit, total) if limit else total

    def _join_extraction(self, extraction, channel: DispatchChannel) -> Optional[BaseException]:
        while True:
            try:
                extraction.result()
                return None
            except KeyboardInterrupt:
                self.cancel()
            except TransferCancelled:
                return None
            except ExtractionError as exc:
                return exc
            except Exception as exc:
                if not channel.closed:
                    # workers are still waiting on the stream
                    channel.close()
                return ExtractionError(
                    f"extraction from {self._extractor.describe()} crashed: {exc}",
                    enqueued=self._extractor.enqueued,
                )

    def _wait_interruptible(self, futures) -> None:
        while True:
            try:
                wait(futures)
                return
            except KeyboardInterrupt:
                self.cancel()

    def _set_state(self, state: RunState) -> None:
        logger.debug(f"[{self._coord_id}] {self._state.value} -> {state.value}")
        self._state = state

    def _finish(
        self,
        result: TransferResult,
        state: RunState,
        t0: float,
        error: Optional[BaseException],
    ) -> TransferResult:
        self._set_state(state)
        result.state = state
        result.error = error
        result.duration_seconds = time.monotonic() - t0
        RUNS_TOTAL.labels(state=state.value).inc()

        summary = (
            f"[{self._coord_id}] Transfer {state.value}: {result.written} written, "
            f"{result.failed} failed, {result.enqueued} enqueued "
            f"in {result.duration_seconds:.2f}s"
        )
        if error is not None:
            summary += f" ({error})"
        if state == RunState.DONE and result.failed == 0:
            logger.success(summary)
        elif state == RunState.DONE:
            logger.warning(summary)
        else:
            logger.error(summary)
        return result
