"""
esdump: bulk transfer, backup and restore for Elasticsearch indices

Moves documents between a cluster and another cluster or a local file with
bounded concurrency, backpressure and per-record failure tolerance.

Usage:
    from esdump import TransferJob, PipelineCoordinator, CursorExtractor, FileSink
    from esdump_client import ESClient

    es = ESClient({"url": "http://localhost:9200"})
    job = TransferJob(source_index="logs", destination=FileSink("logs.ndjson"))
    result = PipelineCoordinator(CursorExtractor(es, "logs"), job).run()
    result.raise_for_state()
"""

__version__ = "1.0.0"

from .errors import (
    TransferError,
    ConfigurationError,
    SinkOpenError,
    CountError,
    MetadataError,
    ExtractionError,
    TransferCancelled,
    ChannelClosedError,
    RecordWriteError,
)
from .pipeline import (
    CursorExtractor,
    DispatchChannel,
    FileExtractor,
    PipelineCoordinator,
    ProgressCounter,
    RunState,
    TransferJob,
    TransferResult,
    WriteBackWorker,
)
from .sinks import ClusterSink, FileSink, build_sink
from .metadata import transfer_metadata, restore_metadata

__all__ = [
    "TransferJob",
    "TransferResult",
    "RunState",
    "PipelineCoordinator",
    "DispatchChannel",
    "CursorExtractor",
    "FileExtractor",
    "WriteBackWorker",
    "ProgressCounter",
    "FileSink",
    "ClusterSink",
    "build_sink",
    "transfer_metadata",
    "restore_metadata",
    "TransferError",
    "ConfigurationError",
    "SinkOpenError",
    "CountError",
    "MetadataError",
    "ExtractionError",
    "TransferCancelled",
    "ChannelClosedError",
    "RecordWriteError",
]
