"""
Round trip against a live cluster: index -> backup file -> restore -> compare.

Skipped unless ESDUMP_TEST_URL points at a disposable cluster
(e.g. http://localhost:9200).
"""

from __future__ import annotations

import os
import uuid

import pytest

from esdump import (
    ClusterSink,
    CursorExtractor,
    FileExtractor,
    FileSink,
    PipelineCoordinator,
    RunState,
    TransferJob,
)
from esdump_client import connect

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.getenv("ESDUMP_TEST_URL"),
        reason="set ESDUMP_TEST_URL to run cluster tests",
    ),
]


@pytest.fixture
def es():
    client = connect(
        os.environ["ESDUMP_TEST_URL"],
        username=os.getenv("ESDUMP_TEST_USERNAME"),
        password=os.getenv("ESDUMP_TEST_PASSWORD"),
    )
    yield client
    client.close()


@pytest.fixture
def index_name(es):
    name = f"esdump-test-{uuid.uuid4().hex[:8]}"
    yield name
    raw = es._es
    raw.indices.delete(index=f"{name}*", ignore_unavailable=True, allow_no_indices=True)


def _search_all(es, index):
    es._es.indices.refresh(index=index)
    cursor, docs = es.search(index, size=500)
    out = {}
    while docs:
        out.update({d.id: d.source for d in docs})
        cursor, docs = es.continue_scroll(cursor)
    es.clear_scroll(cursor)
    return out


def test_backup_restore_roundtrip(es, index_name, tmp_path):
    for i in range(120):
        es.upsert(index_name, f"doc-{i}", {"n": i, "tags": ["a", "b"][: i % 3]})
    es._es.indices.refresh(index=index_name)

    backup = tmp_path / "backup.ndjson.gz"
    job = TransferJob(
        source_index=index_name, destination=FileSink(str(backup)), page_size=25, concurrency=4
    )
    result = PipelineCoordinator(CursorExtractor(es, index_name), job).run()
    assert result.state == RunState.DONE
    assert result.written == 120

    restored = f"{index_name}-restored"
    job = TransferJob(
        source_index=str(backup), destination=ClusterSink(es, restored), page_size=50
    )
    result = PipelineCoordinator(FileExtractor(str(backup)), job).run()
    assert result.state == RunState.DONE

    assert _search_all(es, restored) == _search_all(es, index_name)
