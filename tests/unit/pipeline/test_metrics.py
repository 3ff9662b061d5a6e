"""
Light sanity checks on the transfer metrics.
"""

from prometheus_client import REGISTRY

from esdump.metrics import metrics_registry
from esdump.pipeline import CursorExtractor, PipelineCoordinator, TransferJob
from esdump.sinks import ClusterSink


def _value(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_run_updates_counters(store):
    store.add("src", 6)
    store.reject_ids.add("4")
    before = {
        "extracted": _value("esdump_records_extracted_total", source="cluster"),
        "ok": _value("esdump_sink_writes_total", sink="cluster", outcome="success"),
        "failed": _value("esdump_sink_writes_total", sink="cluster", outcome="failure"),
        "runs": _value("esdump_runs_total", state="done"),
    }

    job = TransferJob(source_index="src", destination=ClusterSink(store, "dst"), page_size=4)
    PipelineCoordinator(CursorExtractor(store, "src"), job).run()

    assert _value("esdump_records_extracted_total", source="cluster") - before["extracted"] == 6
    assert _value("esdump_sink_writes_total", sink="cluster", outcome="success") - before["ok"] == 5
    assert (
        _value("esdump_sink_writes_total", sink="cluster", outcome="failure") - before["failed"]
        == 1
    )
    assert _value("esdump_runs_total", state="done") - before["runs"] == 1
    assert _value("esdump_channel_depth") == 0


def test_registry_exposes_metrics():
    assert metrics_registry.runs_total is not None
    assert metrics_registry.sink_write_latency is not None
