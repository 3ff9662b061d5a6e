from __future__ import annotations

from dataclasses import dataclass

from ..errors import ConfigurationError
from .types import OUTPUT_FORMATS, Sink


@dataclass(frozen=True)
class TransferJob:
    """Fully resolved description of one run; never mutated once built.

    Attributes:
        source_index: Index (or backup file path, for restores) records are read from
        destination: Sink every record is applied to
        page_size: Records requested per page
        concurrency: Number of write-back workers
        limit: Maximum records to enqueue (0 = unbounded)
        format: File framing ("ndjson" or "json"); a file destination must use the same
    """

    source_index: str
    destination: Sink
    page_size: int = 1000
    concurrency: int = 4
    limit: int = 0
    format: str = "ndjson"

    def __post_init__(self) -> None:
        if not self.source_index:
            raise ConfigurationError("source index is required")
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1 (got {self.concurrency})")
        if self.page_size < 1:
            raise ConfigurationError(f"page size must be >= 1 (got {self.page_size})")
        if self.limit < 0:
            raise ConfigurationError(f"limit must be >= 0 (got {self.limit})")
        if self.format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"unsupported format: {self.format} (expected one of {', '.join(OUTPUT_FORMATS)})"
            )
        sink_format = getattr(self.destination, "format", None)
        if sink_format is not None and sink_format != self.format:
            raise ConfigurationError(
                f"destination writes {sink_format} but the job format is {self.format}"
            )

    @property
    def channel_capacity(self) -> int:
        return 2 * self.concurrency
