"""Bulk transfer pipeline

Extractor -> bounded dispatch channel -> write-back worker pool -> sink:
- DispatchChannel (bounded, closable, cancellable hand-off)
- CursorExtractor / FileExtractor (paginated sources, limit handling)
- WriteBackWorker (per-record write, log-and-skip on failure)
- PipelineCoordinator (count, wiring, join, terminal state)
- ProgressCounter (shared attempt counter for progress display)
"""

from .types import Sink, StoreClient, OutputFormat, OUTPUT_FORMATS
from .channel import DispatchChannel
from .extractor import Extractor, CursorExtractor, FileExtractor
from .job import TransferJob
from .progress import ProgressCounter
from .worker import WriteBackWorker, WorkerStats
from .coordinator import PipelineCoordinator, RunState, TransferResult

__all__ = [
    # types
    "Sink",
    "StoreClient",
    "OutputFormat",
    "OUTPUT_FORMATS",
    "TransferJob",
    "RunState",
    "TransferResult",
    # runtime
    "DispatchChannel",
    "Extractor",
    "CursorExtractor",
    "FileExtractor",
    "WriteBackWorker",
    "WorkerStats",
    "PipelineCoordinator",
    "ProgressCounter",
]
