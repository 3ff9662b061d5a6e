"""
Transfer metrics, registered in the Prometheus global REGISTRY on import.
"""

from prometheus_client import Counter, Gauge, Histogram


RECORDS_EXTRACTED_TOTAL = Counter(
    "esdump_records_extracted_total",
    "Records pulled from the source and enqueued",
    ["source"],
)

SINK_WRITES_TOTAL = Counter(
    "esdump_sink_writes_total",
    "Write attempts per sink and outcome",
    ["sink", "outcome"],
)

SINK_WRITE_LATENCY = Histogram(
    "esdump_sink_write_latency_seconds",
    "Per-record write latency in seconds",
    ["sink"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5],
)

CHANNEL_DEPTH = Gauge(
    "esdump_channel_depth",
    "Records waiting in the dispatch channel",
)

RUNS_TOTAL = Counter(
    "esdump_runs_total",
    "Pipeline runs by terminal state",
    ["state"],
)


class MetricsRegistry:
    """Centralized access to the transfer metrics."""

    records_extracted_total = RECORDS_EXTRACTED_TOTAL
    sink_writes_total = SINK_WRITES_TOTAL
    sink_write_latency = SINK_WRITE_LATENCY
    channel_depth = CHANNEL_DEPTH
    runs_total = RUNS_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
